"""Sharded, TTL-bounded URL shortener."""

__version__ = "1.0.0"
