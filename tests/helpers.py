"""Utilidades de test: reloj simulado y constructores de configuración."""

from typing import Callable, List

from ingest_verifier.codec import format_line
from ingest_verifier.config import VerificationConfig


class FakeClock:
    """Reloj simulado: ``sleep`` avanza el tiempo y dispara los hooks."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: List[float] = []
        self._hooks: List[Callable[[float], None]] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        for hook in list(self._hooks):
            hook(self.now)

    def on_sleep(self, hook: Callable[[float], None]) -> None:
        self._hooks.append(hook)


def make_config(producers, timeout=90.0, interval=30.0, lost=0.0, restarts=0, app_name="fluentd-logging"):
    return VerificationConfig(
        producers=producers,
        ingestion_timeout=timeout,
        max_allowed_lost_fraction=lost,
        max_allowed_agent_restarts=restarts,
        poll_interval=interval,
        agent_app_name=app_name,
    )


def lines(start: int, stop: int) -> List[str]:
    return [format_line(n) for n in range(start, stop)]
