"""Reflow reader: EPUB sections rendered as paginated, self-contained documents."""

__version__ = "0.1.0"
