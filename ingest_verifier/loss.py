"""Aggregate loss fraction against the configured tolerance."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from .violations import Violation, ViolationKind


@dataclass(frozen=True)
class LossVerdict:
    total_missing: int
    total_expected: int
    lost_fraction: float
    max_allowed_lost_fraction: float

    @property
    def exceeded(self) -> bool:
        # Equal to the tolerance passes.
        return self.lost_fraction > self.max_allowed_lost_fraction

    def violation(self) -> Optional[Violation]:
        if not self.exceeded:
            return None
        return Violation(
            kind=ViolationKind.LOSS_TOLERANCE,
            message=(
                f"lost {self.lost_fraction * 100:.2f}% of lines, "
                f"but only loss of {self.max_allowed_lost_fraction * 100:.2f}% can be tolerated"
            ),
            detail={
                "lost_fraction": self.lost_fraction,
                "max_allowed_lost_fraction": self.max_allowed_lost_fraction,
                "total_missing": self.total_missing,
            },
        )


def evaluate_loss(
    missing_by_producer: Mapping[str, int],
    total_expected: int,
    max_allowed_lost_fraction: float,
) -> LossVerdict:
    """Pure function of the final missing counts; never re-queries anything."""
    total_missing = sum(missing_by_producer.values())
    lost_fraction = total_missing / total_expected if total_expected > 0 else 0.0

    return LossVerdict(
        total_missing=total_missing,
        total_expected=total_expected,
        lost_fraction=lost_fraction,
        max_allowed_lost_fraction=max_allowed_lost_fraction,
    )
