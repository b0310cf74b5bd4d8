"""Implementaciones de LogSource, LogSink y PlacementInventory."""

from .memory import InMemoryLogSource, RecordingProducer, StaticPlacementInventory
from .sql import SqlLogSink, SqlLogSource, SqlPlacementInventory, ensure_schema
from .http import HttpLogSource

__all__ = [
    "InMemoryLogSource",
    "RecordingProducer",
    "StaticPlacementInventory",
    "SqlLogSink",
    "SqlLogSource",
    "SqlPlacementInventory",
    "ensure_schema",
    "HttpLogSource",
]
