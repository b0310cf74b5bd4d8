"""Polling loop that waits for producer logs to show up in the log source.

Two waits are provided:

- wait_for_any_sign: every producer has at least one decoded entry (liveness)
- wait_for_completeness: every expected line has been observed, or timeout

Rounds run strictly one after another, with a fixed delay in between. The
clock and sleep functions are injectable so tests can simulate elapsed time.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .config import VerificationConfig
from .errors import LivenessError, LogSourceError
from .interfaces import LogSource
from .records import ProducerRecord

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
Sleep = Callable[[float], None]

PHASE_LIVENESS = "liveness"
PHASE_COMPLETENESS = "completeness"


@dataclass
class RoundSnapshot:
    """Progress after one polling round."""
    phase: str
    round_number: int
    elapsed: float
    total_missing: int
    missing_by_producer: Dict[str, int] = field(default_factory=dict)


@dataclass
class CompletenessResult:
    total_missing: int
    missing_by_producer: Dict[str, int]
    converged: bool
    rounds: int
    elapsed: float


class IngestionPoller:
    """Drives convergence between what producers emitted and what the
    log source can currently prove was ingested.

    Each ProducerRecord is owned by this loop for the duration of a wait;
    there is no concurrent writer, so no locking.
    """

    def __init__(
        self,
        config: VerificationConfig,
        log_source: LogSource,
        clock: Clock = time.monotonic,
        sleep: Sleep = time.sleep,
        on_round: Optional[Callable[[RoundSnapshot], None]] = None,
    ):
        self._config = config
        self._log_source = log_source
        self._clock = clock
        self._sleep = sleep
        self._on_round = on_round

    def wait_for_any_sign(self) -> None:
        """Wait until every producer has at least one decoded entry.

        Producers that already showed an entry are not queried again.

        Raises:
            LivenessError: if the timeout elapsed with silent producers left
        """
        producers = self._config.producers
        has_logs = [False] * len(producers)
        with_logs_count = 0
        rounds = 0

        start = self._clock()
        while self._clock() - start < self._config.ingestion_timeout:
            rounds += 1
            for idx, record in enumerate(producers):
                if has_logs[idx]:
                    continue

                try:
                    entries = self._log_source.read_entries(record)
                except LogSourceError as e:
                    logger.warning("INGEST_QUERY_FAILED producer=%s err=%s", record.name, e)
                    continue

                if not entries:
                    logger.info("INGEST_NO_ENTRIES producer=%s", record.name)
                    continue

                record.absorb_all(entries)
                if any(entry.sequence_number() is not None for entry in entries):
                    logger.info("INGEST_FIRST_ENTRIES producer=%s", record.name)
                    has_logs[idx] = True
                    with_logs_count += 1

            self._notify(
                PHASE_LIVENESS,
                rounds,
                start,
                {p.name: (0 if has_logs[i] else p.expected_line_count) for i, p in enumerate(producers)},
            )

            if with_logs_count == len(producers):
                break
            self._sleep(self._config.poll_interval)

        if with_logs_count < len(producers):
            silent = [p.name for i, p in enumerate(producers) if not has_logs[i]]
            raise LivenessError(silent, len(producers))

    def wait_for_completeness(self) -> CompletenessResult:
        """Wait until every expected line has been observed or the timeout elapses.

        Reaching the timeout with lines still missing is a normal outcome, not
        an error. A failed query counts the producer as fully missing for that
        round only.
        """
        producers = self._config.producers
        total_missing = self._config.total_expected_lines
        missing_by_producer = {p.name: p.expected_line_count for p in producers}
        rounds = 0

        start = self._clock()
        while self._clock() - start < self._config.ingestion_timeout:
            rounds += 1
            missing = 0
            for record in producers:
                if missing_by_producer[record.name] == 0:
                    continue

                missing_by_producer[record.name] = self._pull_missing_count(record)
                missing += missing_by_producer[record.name]

            total_missing = missing
            self._notify(PHASE_COMPLETENESS, rounds, start, missing_by_producer)

            if total_missing > 0:
                logger.info("INGEST_MISSING round=%d total_missing=%d", rounds, total_missing)
            else:
                break
            self._sleep(self._config.poll_interval)

        elapsed = self._clock() - start
        if total_missing > 0:
            logger.info(
                "INGEST_TIMEOUT timeout=%.1fs total_missing=%d",
                self._config.ingestion_timeout, total_missing,
            )
            for name, missing in missing_by_producer.items():
                if missing != 0:
                    logger.info("INGEST_STILL_MISSING producer=%s missing=%d", name, missing)

        return CompletenessResult(
            total_missing=total_missing,
            missing_by_producer=dict(missing_by_producer),
            converged=total_missing == 0,
            rounds=rounds,
            elapsed=elapsed,
        )

    def _pull_missing_count(self, record: ProducerRecord) -> int:
        try:
            entries = self._log_source.read_entries(record)
        except LogSourceError as e:
            logger.warning(
                "INGEST_QUERY_FAILED producer=%s err=%s counting_as_missing=%d",
                record.name, e, record.expected_line_count,
            )
            return record.expected_line_count

        record.absorb_all(entries)
        return record.missing_count

    def _notify(self, phase: str, rounds: int, start: float, missing_by_producer: Dict[str, int]) -> None:
        if self._on_round is None:
            return
        snapshot = RoundSnapshot(
            phase=phase,
            round_number=rounds,
            elapsed=self._clock() - start,
            total_missing=sum(missing_by_producer.values()),
            missing_by_producer=dict(missing_by_producer),
        )
        self._on_round(snapshot)

