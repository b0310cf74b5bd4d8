"""Violaciones de invariantes reportadas como valores explícitos."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class ViolationKind(str, Enum):
    """Tipos de violación de una corrida."""
    LIVENESS = "liveness"
    LOSS_TOLERANCE = "loss_tolerance"
    AGENT_INSTABILITY = "agent_instability"
    PLACEMENT = "placement"
    AGENT_FLEET_UNAVAILABLE = "agent_fleet_unavailable"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    message: str
    detail: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "detail": dict(self.detail),
        }
