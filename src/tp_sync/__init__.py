"""Synchronize a static site with documents served by a TEI Publisher API."""

__version__ = "0.1.0"
