"""Register codec, definition map, dump parser and edit validation.

Import from the submodules directly (``pmicdump.core.dump_parser`` and so
on); the models package depends on ``pmicdump.core.bits``.
"""
