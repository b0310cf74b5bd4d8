"""Estado en memoria por productor de logs."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from .codec import decode_line
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LogEntry:
    """Entrada leída del backend. El número de secuencia se deriva del payload."""
    payload: str

    def sequence_number(self) -> Optional[int]:
        number, ok = decode_line(self.payload)
        return number if ok else None


@dataclass
class ProducerRecord:
    """Progreso de un productor de logs.

    ``occurrences`` es un cache de entradas ingeridas y leídas, indexado por
    número de secuencia. Nunca se achica: la primera entrada vista para un
    número gana y las observaciones repetidas no cambian nada.
    """
    # Name equals the workload name on the platform.
    name: str
    # Node the producer is pinned to. Can be empty.
    placement_target: str
    expected_line_count: int
    # Seconds the producer keeps emitting.
    run_duration: float
    occurrences: Dict[int, LogEntry] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.expected_line_count < 0:
            raise ConfigurationError(
                f"producer {self.name}: expected_line_count must be >= 0, got {self.expected_line_count}"
            )
        if self.run_duration < 0:
            raise ConfigurationError(
                f"producer {self.name}: run_duration must be >= 0, got {self.run_duration}"
            )

    def absorb(self, entry: LogEntry) -> bool:
        """Registra una entrada. Devuelve True si aportó un número nuevo."""
        number = entry.sequence_number()
        if number is None:
            return False

        if number < 0 or number >= self.expected_line_count:
            logger.warning("UNEXPECTED_LINE producer=%s line_number=%d", self.name, number)
            return False

        if number in self.occurrences:
            return False

        self.occurrences[number] = entry
        return True

    def absorb_all(self, entries: Iterable[LogEntry]) -> int:
        return sum(1 for entry in entries if self.absorb(entry))

    @property
    def has_any_entry(self) -> bool:
        return bool(self.occurrences)

    @property
    def missing_count(self) -> int:
        return self.expected_line_count - len(self.occurrences)

    def missing_sequence_numbers(self, limit: Optional[int] = None) -> List[int]:
        """Números aún no vistos, en orden ascendente (útil para diagnóstico)."""
        missing: List[int] = []
        for number in range(self.expected_line_count):
            if number not in self.occurrences:
                missing.append(number)
                if limit is not None and len(missing) >= limit:
                    break
        return missing
