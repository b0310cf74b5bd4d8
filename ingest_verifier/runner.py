"""Verification run orchestrator.

NOT_STARTED -> POLLING -> {CONVERGED | TIMED_OUT} -> AGGREGATED -> {PASSED | FAILED}
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .agents import AgentHealthChecker, PlacementVerdict, RestartVerdict
from .config import VerificationConfig
from .errors import AgentFleetUnavailable, LivenessError
from .interfaces import LogProducer, LogSource, PlacementInventory
from .loss import evaluate_loss
from .poller import Clock, IngestionPoller, RoundSnapshot, Sleep
from .report import RUN_TRANSITIONS, RunState, VerificationReport
from .store import ReportStore
from .violations import Violation, ViolationKind

logger = logging.getLogger(__name__)

MISSING_SAMPLE_SIZE = 10


class VerificationRunner:
    """Ejecuta una única corrida de verificación y produce el reporte.

    Each runner owns its config and records; independent runners can execute
    side by side.
    """

    def __init__(
        self,
        config: VerificationConfig,
        log_source: LogSource,
        inventory: PlacementInventory,
        producer: Optional[LogProducer] = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
        store: Optional[ReportStore] = None,
    ):
        self._config = config
        self._log_source = log_source
        self._inventory = inventory
        self._producer = producer
        self._store = store
        self._state = RunState.NOT_STARTED
        self._poller = IngestionPoller(
            config,
            log_source,
            clock=clock,
            sleep=sleep,
            on_round=self._on_round,
        )

    @property
    def state(self) -> RunState:
        return self._state

    def run(self, *, check_placement: bool = True, wait_for_liveness: bool = True) -> VerificationReport:
        if self._state is not RunState.NOT_STARTED:
            raise RuntimeError("a VerificationRunner executes a single run")

        self._log_source.open()
        try:
            return self._run(check_placement, wait_for_liveness)
        finally:
            self._log_source.close()

    def _run(self, check_placement: bool, wait_for_liveness: bool) -> VerificationReport:
        config = self._config
        started_at = datetime.now(timezone.utc)
        violations: List[Violation] = []

        if config.total_expected_lines == 0:
            logger.warning("RUN_CONFIG total_expected_lines=0, loss fraction is meaningless")

        self._advance(RunState.POLLING)
        if self._producer is not None:
            self._start_producers()

        if wait_for_liveness:
            try:
                self._poller.wait_for_any_sign()
            except LivenessError as e:
                logger.error("RUN_LIVENESS_FAILED %s", e)
                violations.append(
                    Violation(
                        kind=ViolationKind.LIVENESS,
                        message=str(e),
                        detail={"silent_producers": e.silent_producers, "total": e.total},
                    )
                )

        completeness = self._poller.wait_for_completeness()
        self._advance(RunState.CONVERGED if completeness.converged else RunState.TIMED_OUT)

        loss = evaluate_loss(
            completeness.missing_by_producer,
            config.total_expected_lines,
            config.max_allowed_lost_fraction,
        )
        if loss.total_missing > 0:
            logger.info(
                "RUN_LOSS total_missing=%d lost=%.2f%% allowed=%.2f%%",
                loss.total_missing, loss.lost_fraction * 100, loss.max_allowed_lost_fraction * 100,
            )

        restarts, placement = self._check_agents(check_placement, violations)
        self._advance(RunState.AGGREGATED)

        report = VerificationReport.build(
            loss=loss,
            missing_by_producer=completeness.missing_by_producer,
            restarts=restarts,
            placement=placement,
            extra_violations=violations,
            converged=completeness.converged,
            rounds=completeness.rounds,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
            missing_samples={
                record.name: record.missing_sequence_numbers(limit=MISSING_SAMPLE_SIZE)
                for record in config.producers
                if completeness.missing_by_producer.get(record.name, 0) > 0
            },
        )
        self._advance(report.final_state)

        if self._store is not None:
            self._store.publish_report(report)

        logger.info(
            "RUN_DONE passed=%s placement_passed=%s violations=%d",
            report.passed, report.placement_passed, len(report.violations),
        )
        return report

    def _check_agents(
        self,
        check_placement: bool,
        violations: List[Violation],
    ) -> Tuple[Optional[RestartVerdict], Optional[PlacementVerdict]]:
        checker = AgentHealthChecker(self._inventory, self._config.agent_app_name)

        try:
            restarts = checker.check_restarts(self._config.max_allowed_agent_restarts)
        except AgentFleetUnavailable as e:
            violations.append(
                Violation(
                    kind=ViolationKind.AGENT_FLEET_UNAVAILABLE,
                    message=str(e),
                    detail={"app_name": e.app_name},
                )
            )
            # Placement needs the same fleet listing.
            return None, None

        placement: Optional[PlacementVerdict] = None
        if check_placement:
            try:
                placement = checker.check_placement()
            except AgentFleetUnavailable as e:
                violations.append(
                    Violation(
                        kind=ViolationKind.AGENT_FLEET_UNAVAILABLE,
                        message=str(e),
                        detail={"app_name": e.app_name},
                    )
                )

        return restarts, placement

    def _start_producers(self) -> None:
        for record in self._config.producers:
            logger.info(
                "PRODUCER_START producer=%s node=%s lines=%d duration=%.1fs",
                record.name, record.placement_target or "-", record.expected_line_count, record.run_duration,
            )
            self._producer.start(record)

    def _on_round(self, snapshot: RoundSnapshot) -> None:
        if self._store is not None:
            self._store.record_round(snapshot)

    def _advance(self, state: RunState) -> None:
        if state not in RUN_TRANSITIONS[self._state]:
            raise RuntimeError(f"invalid run transition {self._state.value} -> {state.value}")
        self._state = state
        logger.info("RUN_STATE state=%s", state.value)
        if self._store is not None:
            self._store.set_state(state)
