"""Scoped admin session broker."""

__version__ = "0.1.0"
