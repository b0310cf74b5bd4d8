"""Terminal pass/fail decision of a verification run, plus diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .agents import PlacementVerdict, PlacementViolation, RestartVerdict
from .errors import VerificationFailed
from .loss import LossVerdict
from .violations import Violation


class RunState(str, Enum):
    """Estados de una corrida. Las transiciones nunca retroceden."""
    NOT_STARTED = "not_started"
    POLLING = "polling"
    CONVERGED = "converged"
    TIMED_OUT = "timed_out"
    AGGREGATED = "aggregated"
    PASSED = "passed"
    FAILED = "failed"


# Valid next states for each state.
RUN_TRANSITIONS: Dict[RunState, Tuple[RunState, ...]] = {
    RunState.NOT_STARTED: (RunState.POLLING,),
    RunState.POLLING: (RunState.CONVERGED, RunState.TIMED_OUT),
    RunState.CONVERGED: (RunState.AGGREGATED,),
    RunState.TIMED_OUT: (RunState.AGGREGATED,),
    RunState.AGGREGATED: (RunState.PASSED, RunState.FAILED),
    RunState.PASSED: (),
    RunState.FAILED: (),
}


@dataclass(frozen=True)
class VerificationReport:
    """Resultado inmutable de una corrida.

    ``passed`` reflects the loss tolerance and the agent restart threshold.
    Placement is an independent check reported in ``placement_passed``
    (None when it was not run). ``violations`` lists every violated
    invariant found, including liveness.
    """
    passed: bool
    total_missing: int
    total_expected: int
    lost_fraction: float
    missing_by_producer: Dict[str, int]
    max_restart_count: Optional[int]
    restart_counts: Dict[str, int]
    placement_violations: List[PlacementViolation]
    placement_passed: Optional[bool]
    violations: List[Violation]
    final_state: RunState
    started_at: datetime
    finished_at: datetime
    converged: bool = False
    rounds: int = 0
    missing_samples: Dict[str, List[int]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        loss: LossVerdict,
        missing_by_producer: Dict[str, int],
        restarts: Optional[RestartVerdict],
        placement: Optional[PlacementVerdict],
        extra_violations: List[Violation],
        converged: bool,
        rounds: int,
        started_at: datetime,
        finished_at: datetime,
        missing_samples: Optional[Dict[str, List[int]]] = None,
    ) -> "VerificationReport":
        violations: List[Violation] = list(extra_violations)

        loss_violation = loss.violation()
        if loss_violation is not None:
            violations.append(loss_violation)

        restart_violation = restarts.violation() if restarts is not None else None
        if restart_violation is not None:
            violations.append(restart_violation)

        if placement is not None:
            violations.extend(v.to_violation() for v in placement.violations)

        # Without a restart verdict the agent fleet could not be fetched.
        passed = loss_violation is None and restarts is not None and restart_violation is None

        return cls(
            passed=passed,
            total_missing=loss.total_missing,
            total_expected=loss.total_expected,
            lost_fraction=loss.lost_fraction,
            missing_by_producer=dict(missing_by_producer),
            max_restart_count=restarts.max_restart_count if restarts is not None else None,
            restart_counts=dict(restarts.restart_counts) if restarts is not None else {},
            placement_violations=list(placement.violations) if placement is not None else [],
            placement_passed=placement.passed if placement is not None else None,
            violations=violations,
            final_state=RunState.PASSED if passed else RunState.FAILED,
            started_at=started_at,
            finished_at=finished_at,
            converged=converged,
            rounds=rounds,
            missing_samples=dict(missing_samples or {}),
        )

    @property
    def ok(self) -> bool:
        """True when no invariant at all was violated."""
        return not self.violations

    def raise_for_failure(self) -> None:
        if self.violations:
            raise VerificationFailed([v.message for v in self.violations])

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "ok": self.ok,
            "final_state": self.final_state.value,
            "total_missing": self.total_missing,
            "total_expected": self.total_expected,
            "lost_fraction": round(self.lost_fraction, 6),
            "converged": self.converged,
            "rounds": self.rounds,
            "missing_by_producer": dict(self.missing_by_producer),
            "missing_samples": {k: list(v) for k, v in self.missing_samples.items()},
            "max_restart_count": self.max_restart_count,
            "restart_counts": dict(self.restart_counts),
            "placement_passed": self.placement_passed,
            "placement_violations": [
                {
                    "node_name": v.node_name,
                    "problem": v.problem.value,
                    "instance_count": v.instance_count,
                }
                for v in self.placement_violations
            ],
            "violations": [v.to_dict() for v in self.violations],
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat(),
        }
