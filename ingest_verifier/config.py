"""Verification run configuration."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

from common.config import DEFAULT_AGENT_APP_NAME, Settings

from .errors import ConfigurationError
from .records import ProducerRecord

# Duration of delay between any two attempts to check if all logs are ingested
DEFAULT_POLL_INTERVAL = 30.0


@dataclass(frozen=True)
class VerificationConfig:
    """Configuración inmutable de una corrida de verificación."""
    producers: Tuple[ProducerRecord, ...]
    ingestion_timeout: float  # segundos, por cada espera
    max_allowed_lost_fraction: float
    max_allowed_agent_restarts: int
    poll_interval: float = DEFAULT_POLL_INTERVAL
    agent_app_name: str = DEFAULT_AGENT_APP_NAME

    def __post_init__(self) -> None:
        # Accept any iterable of records, store a tuple.
        object.__setattr__(self, "producers", tuple(self.producers))

        if not 0.0 <= self.max_allowed_lost_fraction <= 1.0:
            raise ConfigurationError(
                f"max_allowed_lost_fraction must be within [0, 1], got {self.max_allowed_lost_fraction}"
            )
        if self.max_allowed_agent_restarts < 0:
            raise ConfigurationError(
                f"max_allowed_agent_restarts must be >= 0, got {self.max_allowed_agent_restarts}"
            )
        if self.ingestion_timeout < 0:
            raise ConfigurationError(f"ingestion_timeout must be >= 0, got {self.ingestion_timeout}")
        if self.poll_interval < 0:
            raise ConfigurationError(f"poll_interval must be >= 0, got {self.poll_interval}")

        names = [p.name for p in self.producers]
        if len(names) != len(set(names)):
            raise ConfigurationError("producer names must be unique")

    @property
    def total_expected_lines(self) -> int:
        return sum(p.expected_line_count for p in self.producers)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        producers: Iterable[ProducerRecord],
    ) -> "VerificationConfig":
        return cls(
            producers=tuple(producers),
            ingestion_timeout=settings.ingestion_timeout,
            max_allowed_lost_fraction=settings.max_lost_fraction,
            max_allowed_agent_restarts=settings.max_agent_restarts,
            poll_interval=settings.poll_interval,
            agent_app_name=settings.agent_app_name,
        )
