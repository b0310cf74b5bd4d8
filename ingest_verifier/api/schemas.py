from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ViolationOut(BaseModel):
    kind: str
    message: str
    detail: Dict[str, Any] = Field(default_factory=dict)


class PlacementViolationOut(BaseModel):
    node_name: str
    problem: str
    instance_count: int = Field(..., ge=0)


class ReportOut(BaseModel):
    passed: bool
    ok: bool
    final_state: str
    total_missing: int = Field(..., ge=0)
    total_expected: int = Field(..., ge=0)
    lost_fraction: float
    converged: bool
    rounds: int
    missing_by_producer: Dict[str, int] = Field(default_factory=dict)
    missing_samples: Dict[str, List[int]] = Field(default_factory=dict)
    max_restart_count: Optional[int] = None
    restart_counts: Dict[str, int] = Field(default_factory=dict)
    placement_passed: Optional[bool] = None
    placement_violations: List[PlacementViolationOut] = Field(default_factory=list)
    violations: List[ViolationOut] = Field(default_factory=list)
    started_at: datetime
    finished_at: datetime


class ProgressOut(BaseModel):
    state: str
    phase: Optional[str] = None
    round: int = 0
    elapsed_seconds: float = 0.0
    total_missing: Optional[int] = None
    missing_by_producer: Dict[str, int] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None
