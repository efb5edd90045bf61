"""Adapters - I/O implementations of ports."""

from .json_store import JsonTaskStore

__all__ = [
    "JsonTaskStore",
]
