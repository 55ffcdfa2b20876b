"""ContestHub - programming contest aggregation service."""

__version__ = "0.1.0"
