"""pmicdump - RTQ5132 PMIC register dump decoder and editor."""

__version__ = "0.1.0"
