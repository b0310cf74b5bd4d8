"""Abstract interfaces for the verifier's collaborators.

This decouples the verifier from any concrete log backend or orchestration
platform. Implementations:

- LogSource: SqlLogSource, HttpLogSource, InMemoryLogSource (tests)
- PlacementInventory: SqlPlacementInventory, StaticPlacementInventory (tests)
- LogProducer: LogsGeneratorProducer, RecordingProducer (tests)
- LogSink: SqlLogSink, InMemoryLogSource (tests)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Set

from .records import LogEntry, ProducerRecord


@dataclass(frozen=True)
class AgentObservation:
    """Restart counter and placement of one collection-agent instance."""
    name: str
    node_name: str
    restart_count: int


class LogSource(ABC):
    """Backend where ingested lines can be read back.

    ``open``/``close`` bracket a whole run; the defaults do nothing.
    """

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    @abstractmethod
    def read_entries(self, record: ProducerRecord) -> List[LogEntry]:
        """Return every entry currently visible for the producer.

        May return a growing superset across calls.

        Raises:
            LogSourceError: if the backend could not be queried
        """
        pass


class PlacementInventory(ABC):

    @abstractmethod
    def eligible_nodes(self) -> Set[str]:
        """Ready, schedulable nodes that must run exactly one agent.

        Raises:
            InventoryError: if the inventory could not be queried
        """
        pass

    @abstractmethod
    def agent_instances(self, app_name: str) -> List[AgentObservation]:
        """Current instances of the agent application.

        Raises:
            InventoryError: if the inventory could not be queried
        """
        pass


class LogProducer(ABC):

    @abstractmethod
    def start(self, record: ProducerRecord) -> None:
        """Begin emitting ``record.expected_line_count`` lines over
        ``record.run_duration`` on ``record.placement_target``.

        Fire-and-forget: must not wait for the lines to be written.
        """
        pass


class LogSink(ABC):
    """Where a synthetic producer writes its lines (the pipeline's entry point)."""

    @abstractmethod
    def write(self, producer: str, payload: str) -> None:
        pass
