"""Fixtures compartidos de los tests del verificador."""

from typing import Callable

import pytest

from ingest_verifier.interfaces import AgentObservation
from ingest_verifier.records import ProducerRecord
from ingest_verifier.sources import InMemoryLogSource, StaticPlacementInventory
from ingest_verifier.store import ReportStore

from helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def log_source() -> InMemoryLogSource:
    return InMemoryLogSource()


@pytest.fixture
def inventory() -> StaticPlacementInventory:
    return StaticPlacementInventory(
        nodes={"node-a", "node-b"},
        agents=[
            AgentObservation(name="fluentd-a", node_name="node-a", restart_count=0),
            AgentObservation(name="fluentd-b", node_name="node-b", restart_count=0),
        ],
    )


@pytest.fixture
def make_record() -> Callable[..., ProducerRecord]:
    def _make(name: str = "synthlogger-0", lines: int = 10, node: str = "node-a", duration: float = 0.0):
        return ProducerRecord(
            name=name,
            placement_target=node,
            expected_line_count=lines,
            run_duration=duration,
        )

    return _make


@pytest.fixture(autouse=True)
def reset_report_store():
    ReportStore.reset_instance()
    yield
    ReportStore.reset_instance()
