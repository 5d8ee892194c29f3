"""Validation and consistency-checking engine for client/worker/task allocation data."""

__version__ = "0.1.0"
