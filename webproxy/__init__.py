"""Concurrent HTTP proxy with CONNECT tunnelling and synchronised logging."""

__version__ = "0.1.0"