"""Serve a tree of Markdown documents as a small website."""

__version__ = "0.1.0"
