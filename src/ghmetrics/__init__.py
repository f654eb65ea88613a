"""GitHub pull-request activity metrics collector."""

__version__ = "0.1.0"
