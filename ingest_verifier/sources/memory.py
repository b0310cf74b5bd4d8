"""In-memory collaborators for tests and local dry runs."""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Set

from ..errors import InventoryError, LogSourceError
from ..interfaces import AgentObservation, LogProducer, LogSink, LogSource, PlacementInventory
from ..records import LogEntry, ProducerRecord


class InMemoryLogSource(LogSource, LogSink):
    """Backend falso: entradas por productor, con fallos programables.

    ``fail_next(name, times)`` hace que las próximas ``times`` lecturas de ese
    productor fallen con LogSourceError.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, List[LogEntry]] = defaultdict(list)
        self._pending_failures: Dict[str, int] = defaultdict(int)
        self.read_calls: Dict[str, int] = defaultdict(int)
        self.opened = False
        self.closed = False

    def open(self) -> None:
        self.opened = True

    def close(self) -> None:
        self.closed = True

    def append(self, producer: str, payload: str) -> None:
        self._entries[producer].append(LogEntry(payload=payload))

    def extend(self, producer: str, payloads: Iterable[str]) -> None:
        for payload in payloads:
            self.append(producer, payload)

    def remove(self, producer: str, payload: str) -> None:
        """Drop entries from the backend (simulates retention or regressions)."""
        self._entries[producer] = [e for e in self._entries[producer] if e.payload != payload]

    def fail_next(self, producer: str, times: int = 1) -> None:
        self._pending_failures[producer] += times

    def read_entries(self, record: ProducerRecord) -> List[LogEntry]:
        self.read_calls[record.name] += 1
        if self._pending_failures[record.name] > 0:
            self._pending_failures[record.name] -= 1
            raise LogSourceError(record.name, "simulated transport failure")
        return list(self._entries[record.name])

    def write(self, producer: str, payload: str) -> None:
        self.append(producer, payload)


class StaticPlacementInventory(PlacementInventory):
    """Inventario fijo de nodos y agentes."""

    def __init__(
        self,
        nodes: Iterable[str] = (),
        agents: Iterable[AgentObservation] = (),
        app_name: Optional[str] = None,
    ):
        self.nodes: Set[str] = set(nodes)
        self.agents: List[AgentObservation] = list(agents)
        self.app_name = app_name
        self.fail_with: Optional[str] = None

    def eligible_nodes(self) -> Set[str]:
        if self.fail_with:
            raise InventoryError(self.fail_with)
        return set(self.nodes)

    def agent_instances(self, app_name: str) -> List[AgentObservation]:
        if self.fail_with:
            raise InventoryError(self.fail_with)
        if self.app_name is not None and app_name != self.app_name:
            return []
        return list(self.agents)


class RecordingProducer(LogProducer):
    """Registra los arranques sin emitir nada."""

    def __init__(self) -> None:
        self.started: List[ProducerRecord] = []

    def start(self, record: ProducerRecord) -> None:
        self.started.append(record)
