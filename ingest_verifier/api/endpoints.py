"""Health and verification diagnostics endpoints.

Expose the progress of the current run and the last report produced.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException

from ..store import ReportStore
from .schemas import ProgressOut, ReportOut

router = APIRouter(tags=["verification"])
logger = logging.getLogger(__name__)


@router.get("/health")
def health():
    """Liveness check, ok while the process is running."""
    return {"status": "ok"}


@router.get("/api/verification/progress", response_model=ProgressOut)
def get_progress():
    """Run state plus per-producer missing counts of the last polling round.

    Example response:
    ```json
    {
        "state": "polling",
        "phase": "completeness",
        "round": 4,
        "elapsed_seconds": 120.3,
        "total_missing": 37,
        "missing_by_producer": {"synthlogger-node-a-0": 37, "synthlogger-node-b-0": 0},
        "updated_at": "2026-01-29T12:00:00+00:00"
    }
    ```
    """
    return ProgressOut(**ReportStore.get_instance().get_progress())


@router.get("/api/verification/report", response_model=ReportOut)
def get_report():
    """Last verification report. 404 while no run has finished."""
    report = ReportStore.get_instance().report
    if report is None:
        raise HTTPException(status_code=404, detail="no verification report yet")
    return ReportOut(**report.to_dict())
