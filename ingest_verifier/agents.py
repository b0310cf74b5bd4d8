"""Health and placement checks of the collection-agent fleet.

Independent of whether logs were ingested: an agent that keeps restarting or
a node without an agent are defects of the pipeline even when no line was lost.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from .errors import AgentFleetUnavailable, InventoryError
from .interfaces import AgentObservation, PlacementInventory
from .violations import Violation, ViolationKind

logger = logging.getLogger(__name__)


class PlacementProblem(str, Enum):
    MISSING_AGENT = "missing_agent"
    DUPLICATE_AGENT = "duplicate_agent"


@dataclass(frozen=True)
class PlacementViolation:
    node_name: str
    problem: PlacementProblem
    instance_count: int

    @property
    def message(self) -> str:
        if self.problem is PlacementProblem.MISSING_AGENT:
            return f"node {self.node_name} doesn't have an agent instance"
        return f"node {self.node_name} contains {self.instance_count} agent instances, expected exactly one"

    def to_violation(self) -> Violation:
        return Violation(
            kind=ViolationKind.PLACEMENT,
            message=self.message,
            detail={
                "node_name": self.node_name,
                "problem": self.problem.value,
                "instance_count": self.instance_count,
            },
        )


@dataclass(frozen=True)
class RestartVerdict:
    max_restart_count: int
    max_allowed: int
    restart_counts: Dict[str, int] = field(default_factory=dict)

    @property
    def exceeded(self) -> bool:
        return self.max_restart_count > self.max_allowed

    def violation(self) -> Optional[Violation]:
        if not self.exceeded:
            return None
        return Violation(
            kind=ViolationKind.AGENT_INSTABILITY,
            message=(
                f"max agent restarts was {self.max_restart_count}, "
                f"which is more than allowed {self.max_allowed}"
            ),
            detail={"max_restart_count": self.max_restart_count, "max_allowed": self.max_allowed},
        )


@dataclass(frozen=True)
class PlacementVerdict:
    eligible_nodes: int
    violations: List[PlacementViolation] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.violations


class AgentHealthChecker:
    """Verifica reinicios y ubicación de los agentes de recolección."""

    def __init__(self, inventory: PlacementInventory, app_name: str):
        self._inventory = inventory
        self._app_name = app_name

    def check_restarts(self, max_allowed: int) -> RestartVerdict:
        """Worst-case policy: the maximum restart count across instances is
        compared, not the sum or the average.

        Raises:
            AgentFleetUnavailable: if the agent instances could not be fetched
        """
        instances = self._fetch_instances()

        max_restart_count = 0
        restart_counts: Dict[str, int] = {}
        for instance in instances:
            restart_counts[instance.name] = instance.restart_count
            max_restart_count = max(max_restart_count, instance.restart_count)
            logger.info(
                "AGENT_RESTARTS agent=%s node=%s restarts=%d",
                instance.name, instance.node_name, instance.restart_count,
            )

        verdict = RestartVerdict(
            max_restart_count=max_restart_count,
            max_allowed=max_allowed,
            restart_counts=restart_counts,
        )
        if verdict.exceeded:
            logger.warning(
                "AGENT_UNSTABLE max_restarts=%d allowed=%d", max_restart_count, max_allowed
            )
        return verdict

    def check_placement(self) -> PlacementVerdict:
        """Every eligible node must run exactly one agent instance.

        Raises:
            AgentFleetUnavailable: if nodes or agent instances could not be fetched
        """
        instances = self._fetch_instances()
        try:
            nodes = self._inventory.eligible_nodes()
        except InventoryError as e:
            raise AgentFleetUnavailable(self._app_name, e) from e

        per_node = Counter(instance.node_name for instance in instances)

        violations: List[PlacementViolation] = []
        for node_name in sorted(nodes):
            count = per_node.get(node_name, 0)
            if count == 0:
                violations.append(PlacementViolation(node_name, PlacementProblem.MISSING_AGENT, 0))
            elif count != 1:
                violations.append(PlacementViolation(node_name, PlacementProblem.DUPLICATE_AGENT, count))

        for violation in violations:
            logger.warning("AGENT_PLACEMENT %s", violation.message)

        return PlacementVerdict(eligible_nodes=len(nodes), violations=violations)

    def _fetch_instances(self) -> List[AgentObservation]:
        try:
            return list(self._inventory.agent_instances(self._app_name))
        except InventoryError as e:
            logger.error("AGENT_FETCH_FAILED app=%s err=%s", self._app_name, e)
            raise AgentFleetUnavailable(self._app_name, e) from e
