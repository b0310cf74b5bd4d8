"""SQL-backed log source, log sink and placement inventory.

All queries are centralized here. No business logic.

Tables:
- <log table> (default ingested_log_entries): id, producer, payload, ingested_at
- cluster_nodes: name, ready, schedulable
- agent_instances: name, app_name, node_name, restart_count
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import List, Set

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    bindparam,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from common.config import DEFAULT_LOG_TABLE

from ..errors import InventoryError, LogSourceError
from ..interfaces import AgentObservation, LogSink, LogSource, PlacementInventory
from ..records import LogEntry, ProducerRecord

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

NODES_TABLE = "cluster_nodes"
AGENTS_TABLE = "agent_instances"


def _checked_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"invalid table name: {name!r}")
    return name


def build_metadata(log_table: str = DEFAULT_LOG_TABLE) -> MetaData:
    metadata = MetaData()
    Table(
        _checked_identifier(log_table),
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column("producer", String(253), nullable=False, index=True),
        Column("payload", Text, nullable=False),
        Column("ingested_at", DateTime(timezone=True), nullable=False),
    )
    Table(
        NODES_TABLE,
        metadata,
        Column("name", String(253), primary_key=True),
        Column("ready", Boolean, nullable=False, default=True),
        Column("schedulable", Boolean, nullable=False, default=True),
    )
    Table(
        AGENTS_TABLE,
        metadata,
        Column("name", String(253), primary_key=True),
        Column("app_name", String(253), nullable=False, index=True),
        Column("node_name", String(253), nullable=False),
        Column("restart_count", Integer, nullable=False, default=0),
    )
    return metadata


def ensure_schema(engine: Engine, log_table: str = DEFAULT_LOG_TABLE) -> None:
    """Create the tables if they do not exist yet."""
    build_metadata(log_table).create_all(engine)
    logger.info("[DB] Schema ready log_table=%s", log_table)


class SqlLogSource(LogSource):

    def __init__(self, engine: Engine, table: str = DEFAULT_LOG_TABLE):
        self._engine = engine
        self._table = _checked_identifier(table)

    def read_entries(self, record: ProducerRecord) -> List[LogEntry]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    text(
                        f"""
                        SELECT payload
                        FROM {self._table}
                        WHERE producer = :producer
                        ORDER BY id
                        """
                    ),
                    {"producer": record.name},
                ).fetchall()
        except SQLAlchemyError as e:
            raise LogSourceError(record.name, type(e).__name__) from e

        return [LogEntry(payload=str(r[0])) for r in rows if r[0] is not None]


class SqlLogSink(LogSink):

    def __init__(self, engine: Engine, table: str = DEFAULT_LOG_TABLE):
        self._engine = engine
        self._table = _checked_identifier(table)

    def write(self, producer: str, payload: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(
                text(
                    f"""
                    INSERT INTO {self._table} (producer, payload, ingested_at)
                    VALUES (:producer, :payload, :ingested_at)
                    """
                ).bindparams(bindparam("ingested_at", type_=DateTime(timezone=True))),
                {
                    "producer": producer,
                    "payload": payload,
                    "ingested_at": datetime.now(timezone.utc),
                },
            )


class SqlPlacementInventory(PlacementInventory):
    """Inventario de nodos y agentes registrado en la BD."""

    def __init__(self, engine: Engine):
        self._engine = engine

    def eligible_nodes(self) -> Set[str]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    text(
                        f"""
                        SELECT name
                        FROM {NODES_TABLE}
                        WHERE ready = :ready AND schedulable = :schedulable
                        """
                    ),
                    {"ready": True, "schedulable": True},
                ).fetchall()
        except SQLAlchemyError as e:
            raise InventoryError(f"failed to list nodes: {type(e).__name__}") from e

        return {str(r[0]) for r in rows}

    def agent_instances(self, app_name: str) -> List[AgentObservation]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    text(
                        f"""
                        SELECT name, node_name, restart_count
                        FROM {AGENTS_TABLE}
                        WHERE app_name = :app_name
                        ORDER BY name
                        """
                    ),
                    {"app_name": app_name},
                ).fetchall()
        except SQLAlchemyError as e:
            raise InventoryError(f"failed to list {app_name} instances: {type(e).__name__}") from e

        return [
            AgentObservation(
                name=str(r[0]),
                node_name=str(r[1]),
                restart_count=int(r[2]) if r[2] is not None else 0,
            )
            for r in rows
        ]
