"""Runs the diagnostics app next to a verification run, in the same process."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import uvicorn

from .main import app

logger = logging.getLogger(__name__)


class BackgroundApiServer:
    """uvicorn en un hilo daemon, compartiendo el ReportStore del proceso.

    Usage:
        server = BackgroundApiServer("0.0.0.0", 8080)
        server.start()
        ...
        server.stop()
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self._server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="info"))
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._server.run, name="verifier-api", daemon=True)
        self._thread.start()
        logger.info("[API] Serving diagnostics on http://%s:%d", self.host, self.port)

    def stop(self, timeout: float = 5.0) -> None:
        self._server.should_exit = True
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("[API] Stopped")
