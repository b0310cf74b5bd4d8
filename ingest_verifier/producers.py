"""Synthetic producer emitting logs-generator lines into a sink.

Useful to exercise the verifier without an orchestration platform: each
started record gets a daemon thread that writes ``expected_line_count``
numbered lines spread evenly over ``run_duration``.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

from .codec import format_line
from .interfaces import LogProducer, LogSink
from .records import ProducerRecord

logger = logging.getLogger(__name__)


class LogsGeneratorProducer(LogProducer):
    """Productor sintético.

    - Un hilo por productor, sin coordinación entre ellos.
    - Un fallo de escritura se loguea y la línea se pierde (como en un
      pipeline real), el hilo sigue con la siguiente.
    """

    def __init__(
        self,
        sink: LogSink,
        sleep: Callable[[float], None] = time.sleep,
        background: bool = True,
    ):
        self._sink = sink
        self._sleep = sleep
        self._background = background
        self._threads: List[threading.Thread] = []

    def start(self, record: ProducerRecord) -> None:
        if not self._background:
            self._emit(record)
            return

        thread = threading.Thread(
            target=self._emit,
            args=(record,),
            name=f"logs-generator-{record.name}",
            daemon=True,
        )
        self._threads.append(thread)
        thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for every emitting thread (tests and one-shot CLI runs)."""
        for thread in self._threads:
            thread.join(timeout)

    def _emit(self, record: ProducerRecord) -> None:
        total = record.expected_line_count
        interval = record.run_duration / total if total > 0 else 0.0
        failed = 0

        for number in range(total):
            try:
                self._sink.write(record.name, format_line(number))
            except Exception as e:
                failed += 1
                logger.warning("GENERATOR_WRITE_FAILED producer=%s line=%d err=%s", record.name, number, e)
            if interval > 0 and number < total - 1:
                self._sleep(interval)

        logger.info("GENERATOR_DONE producer=%s lines=%d failed=%d", record.name, total, failed)
