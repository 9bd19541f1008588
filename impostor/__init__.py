"""Room and round coordination server for word-based social deduction games."""

__version__ = "0.1.0"
