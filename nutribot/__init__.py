"""Nutribot: free-text food descriptions to validated calories and macros."""

__version__ = "0.1.0"
