"""Upstream row sources."""

from .base import RowQuery, RowSource, RowSourceError
from .dummy import DummyReader
from .gviz import GvizSheetReader

__all__ = [
    "RowQuery",
    "RowSource",
    "RowSourceError",
    "DummyReader",
    "GvizSheetReader",
]
