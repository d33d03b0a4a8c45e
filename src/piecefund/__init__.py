"""Shared domain package for piece funding payment reconciliation."""

__version__ = "0.1.0"
