"""Marketplace delivery calendar backed by Google Sheets."""

__version__ = "1.0.0"
