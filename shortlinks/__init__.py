"""Authenticated URL shortener with click counting and expiring links."""

__version__ = "1.0.0"
