"""Marginalia: live annotation engine for a manuscript editor."""

__version__ = "0.1.0"
