"""Market-driven power ratings and tournament bracket projection."""

__version__ = "0.1.0"
