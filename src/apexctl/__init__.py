"""apexctl: developer-automation command dispatcher."""

__version__ = "0.4.0"
