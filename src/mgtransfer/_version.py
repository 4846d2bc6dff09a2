"""Version information for mgtransfer."""

__version__ = "0.3.0"
