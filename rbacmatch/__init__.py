"""Matching operators, rule helpers and an LRU cache for access-control policy evaluation."""

__version__ = "0.1.0"
__all__ = ["builtin_operators", "util"]