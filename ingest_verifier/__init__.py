"""Verificador de completitud de ingesta de logs.

Producers emit numbered lines, the collection agents forward them to a
backend, and the verifier polls the backend until every line is accounted
for, then checks loss tolerance and agent health.
"""

from .codec import decode_line, format_line
from .config import VerificationConfig
from .records import LogEntry, ProducerRecord
from .poller import CompletenessResult, IngestionPoller
from .loss import LossVerdict, evaluate_loss
from .agents import AgentHealthChecker
from .report import RunState, VerificationReport
from .runner import VerificationRunner

__all__ = [
    "decode_line",
    "format_line",
    "VerificationConfig",
    "LogEntry",
    "ProducerRecord",
    "CompletenessResult",
    "IngestionPoller",
    "LossVerdict",
    "evaluate_loss",
    "AgentHealthChecker",
    "RunState",
    "VerificationReport",
    "VerificationRunner",
]
