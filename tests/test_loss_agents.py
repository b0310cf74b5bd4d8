"""Tests de agregación de pérdida y health checks de agentes.

Ejecutar:
    pytest tests/test_loss_agents.py -v
"""

import pytest

from ingest_verifier.agents import AgentHealthChecker, PlacementProblem
from ingest_verifier.errors import AgentFleetUnavailable
from ingest_verifier.interfaces import AgentObservation
from ingest_verifier.loss import evaluate_loss
from ingest_verifier.sources import StaticPlacementInventory
from ingest_verifier.violations import ViolationKind


# =============================================================================
# LOSS AGGREGATOR
# =============================================================================

class TestEvaluateLoss:
    """Fracción perdida vs tolerancia; igual a la tolerancia pasa."""

    def test_fraction_computed_from_total(self):
        verdict = evaluate_loss({"a": 2, "b": 3}, 100, 0.05)

        assert verdict.total_missing == 5
        assert verdict.lost_fraction == pytest.approx(0.05)

    def test_equal_to_tolerance_passes(self):
        verdict = evaluate_loss({"a": 5}, 100, 0.05)

        assert verdict.exceeded is False
        assert verdict.violation() is None

    def test_above_tolerance_fails_with_both_values(self):
        verdict = evaluate_loss({"a": 5}, 100, 0.04)

        assert verdict.exceeded is True
        violation = verdict.violation()
        assert violation.kind is ViolationKind.LOSS_TOLERANCE
        assert "lost 5.00% of lines" in violation.message
        assert "4.00% can be tolerated" in violation.message
        assert violation.detail["lost_fraction"] == pytest.approx(0.05)
        assert violation.detail["max_allowed_lost_fraction"] == pytest.approx(0.04)

    def test_zero_expected_is_zero_fraction(self):
        verdict = evaluate_loss({}, 0, 0.0)

        assert verdict.lost_fraction == 0.0
        assert verdict.exceeded is False

    def test_pure_function(self):
        missing = {"a": 1}
        evaluate_loss(missing, 10, 0.0)
        assert missing == {"a": 1}


# =============================================================================
# AGENT HEALTH CHECKER
# =============================================================================

def _agent(name, node, restarts=0):
    return AgentObservation(name=name, node_name=node, restart_count=restarts)


class TestCheckRestarts:
    """Política de peor caso: se compara el máximo, no el promedio."""

    def test_max_not_average(self):
        inventory = StaticPlacementInventory(
            nodes={"n1", "n2", "n3"},
            agents=[_agent("f1", "n1", 0), _agent("f2", "n2", 0), _agent("f3", "n3", 3)],
        )

        verdict = AgentHealthChecker(inventory, "fluentd-logging").check_restarts(2)

        assert verdict.exceeded is True
        assert verdict.max_restart_count == 3
        assert verdict.restart_counts == {"f1": 0, "f2": 0, "f3": 3}
        assert "max agent restarts was 3, which is more than allowed 2" in verdict.violation().message

    def test_within_threshold(self, inventory):
        verdict = AgentHealthChecker(inventory, "fluentd-logging").check_restarts(0)

        assert verdict.exceeded is False
        assert verdict.violation() is None

    def test_empty_fleet_has_zero_restarts(self):
        verdict = AgentHealthChecker(StaticPlacementInventory(), "fluentd-logging").check_restarts(0)

        assert verdict.max_restart_count == 0

    def test_fetch_failure_is_fatal(self, inventory):
        inventory.fail_with = "connection refused"

        with pytest.raises(AgentFleetUnavailable) as exc_info:
            AgentHealthChecker(inventory, "fluentd-logging").check_restarts(0)

        assert "fluentd-logging" in str(exc_info.value)


class TestCheckPlacement:
    """Exactamente un agente por nodo elegible."""

    def test_single_agent_per_node_passes(self, inventory):
        verdict = AgentHealthChecker(inventory, "fluentd-logging").check_placement()

        assert verdict.passed is True
        assert verdict.eligible_nodes == 2

    def test_missing_and_duplicate_reported_together(self):
        inventory = StaticPlacementInventory(
            nodes={"node-a", "node-b", "node-c"},
            agents=[
                _agent("f-a", "node-a"),
                _agent("f-c1", "node-c"),
                _agent("f-c2", "node-c"),
            ],
        )

        verdict = AgentHealthChecker(inventory, "fluentd-logging").check_placement()

        assert verdict.passed is False
        assert [(v.node_name, v.problem) for v in verdict.violations] == [
            ("node-b", PlacementProblem.MISSING_AGENT),
            ("node-c", PlacementProblem.DUPLICATE_AGENT),
        ]
        assert verdict.violations[1].instance_count == 2
        assert "doesn't have an agent instance" in verdict.violations[0].message
        assert "contains 2 agent instances" in verdict.violations[1].message

    def test_agents_on_ineligible_nodes_ignored(self):
        inventory = StaticPlacementInventory(
            nodes={"node-a"},
            agents=[_agent("f-a", "node-a"), _agent("f-x", "cordoned"), _agent("f-y", "cordoned")],
        )

        verdict = AgentHealthChecker(inventory, "fluentd-logging").check_placement()

        assert verdict.passed is True

    def test_violation_value(self):
        inventory = StaticPlacementInventory(nodes={"node-a"}, agents=[])

        violation = AgentHealthChecker(inventory, "fluentd-logging").check_placement().violations[0]

        v = violation.to_violation()
        assert v.kind is ViolationKind.PLACEMENT
        assert v.detail == {"node_name": "node-a", "problem": "missing_agent", "instance_count": 0}

    def test_inventory_failure_is_fatal(self, inventory):
        inventory.fail_with = "timeout"

        with pytest.raises(AgentFleetUnavailable):
            AgentHealthChecker(inventory, "fluentd-logging").check_placement()
