"""A small handheld-console CPU core with memory banking and LCD timing."""

__version__ = "0.1.0"