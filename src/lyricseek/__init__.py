"""LyricSeek - find complete, correctly-languaged lyrics across many sources."""

__version__ = "0.1.0"
