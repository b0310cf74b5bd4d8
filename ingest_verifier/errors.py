"""Excepciones del verificador de ingesta.

Las violaciones de invariantes se reportan como valores (ver report.Violation);
estas excepciones se usan en los bordes: transporte, inventario y configuración.
"""

from __future__ import annotations

from typing import List, Sequence


class VerificationError(Exception):
    """Base de todos los errores del verificador."""


class ConfigurationError(VerificationError):
    """Configuración inválida (fracciones fuera de rango, conteos negativos...)."""


class LogSourceError(VerificationError):
    """Fallo al consultar el backend de logs para un productor."""

    def __init__(self, producer: str, message: str):
        self.producer = producer
        super().__init__(f"failed to read entries for producer {producer}: {message}")


class InventoryError(VerificationError):
    """Fallo al consultar el inventario de nodos/agentes."""


class AgentFleetUnavailable(VerificationError):
    """No se pudo obtener la flota de agentes durante el health check."""

    def __init__(self, app_name: str, cause: Exception):
        self.app_name = app_name
        super().__init__(f"failed to get {app_name} agent instances due to {cause}")


class LivenessError(VerificationError):
    """Algunos productores no mostraron ninguna línea ingerida antes del timeout."""

    def __init__(self, silent_producers: Sequence[str], total: int):
        self.silent_producers = list(silent_producers)
        self.total = total
        super().__init__(
            f"no sign of ingestion for {len(self.silent_producers)} producers out of {total}"
        )

    @property
    def silent_count(self) -> int:
        return len(self.silent_producers)


class VerificationFailed(VerificationError):
    """La corrida terminó con una o más violaciones."""

    def __init__(self, messages: List[str]):
        self.messages = list(messages)
        super().__init__("verification failed: " + "; ".join(self.messages))
