"""Chirpy: a small Flask and SQLite HTTP API for users and short messages."""

__version__ = "0.1.0"