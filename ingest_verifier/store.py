"""Latest run state and report, shared with the HTTP diagnostics layer."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Dict, Optional

from .poller import RoundSnapshot
from .report import RunState, VerificationReport


class ReportStore:
    """Thread-safe singleton holding the progress of the current run.

    The runner writes, the API reads.

    Usage:
        store = ReportStore.get_instance()
        store.set_state(RunState.POLLING)
        store.get_progress()
    """

    _instance: Optional["ReportStore"] = None
    _lock = threading.Lock()

    def __init__(self):
        self._data_lock = threading.Lock()
        self._state = RunState.NOT_STARTED
        self._last_round: Optional[RoundSnapshot] = None
        self._report: Optional[VerificationReport] = None
        self._updated_at: Optional[datetime] = None

    @classmethod
    def get_instance(cls) -> "ReportStore":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton (for testing)."""
        with cls._lock:
            cls._instance = None

    def set_state(self, state: RunState) -> None:
        with self._data_lock:
            self._state = state
            self._updated_at = datetime.now(timezone.utc)

    def record_round(self, snapshot: RoundSnapshot) -> None:
        with self._data_lock:
            self._last_round = snapshot
            self._updated_at = datetime.now(timezone.utc)

    def publish_report(self, report: VerificationReport) -> None:
        with self._data_lock:
            self._report = report
            self._state = report.final_state
            self._updated_at = datetime.now(timezone.utc)

    @property
    def report(self) -> Optional[VerificationReport]:
        with self._data_lock:
            return self._report

    def get_progress(self) -> dict:
        with self._data_lock:
            snapshot = self._last_round
            missing: Dict[str, int] = dict(snapshot.missing_by_producer) if snapshot else {}
            return {
                "state": self._state.value,
                "phase": snapshot.phase if snapshot else None,
                "round": snapshot.round_number if snapshot else 0,
                "elapsed_seconds": round(snapshot.elapsed, 3) if snapshot else 0.0,
                "total_missing": snapshot.total_missing if snapshot else None,
                "missing_by_producer": missing,
                "updated_at": self._updated_at.isoformat() if self._updated_at else None,
            }
