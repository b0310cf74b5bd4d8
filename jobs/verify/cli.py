"""CLI entry point for a verification run."""

from __future__ import annotations

import argparse
import json
import logging
import time
from typing import Iterable, List, Optional

from common.config import get_settings
from common.db import build_sqlalchemy_url, get_engine
from ingest_verifier.api.server import BackgroundApiServer
from ingest_verifier.config import VerificationConfig
from ingest_verifier.errors import ConfigurationError, InventoryError
from ingest_verifier.interfaces import LogSource
from ingest_verifier.producers import LogsGeneratorProducer
from ingest_verifier.records import ProducerRecord
from ingest_verifier.runner import VerificationRunner
from ingest_verifier.sources import (
    HttpLogSource,
    SqlLogSink,
    SqlLogSource,
    SqlPlacementInventory,
    ensure_schema,
)
from ingest_verifier.store import ReportStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def build_producers(
    nodes: Iterable[str],
    producers_per_node: int,
    lines: int,
    duration: float,
    prefix: str = "synthlogger",
) -> List[ProducerRecord]:
    """One record per (node, index), pinned to its node."""
    return [
        ProducerRecord(
            name=f"{prefix}-{node}-{i}",
            placement_target=node,
            expected_line_count=lines,
            run_duration=duration,
        )
        for node in sorted(nodes)
        for i in range(producers_per_node)
    ]


def _parser() -> argparse.ArgumentParser:
    settings = get_settings()
    p = argparse.ArgumentParser(description="Log ingestion completeness verifier")
    p.add_argument("--producers-per-node", type=int, default=1)
    p.add_argument("--lines", type=int, default=1000, help="lines emitted by each producer")
    p.add_argument("--duration", type=float, default=60.0, help="seconds each producer keeps emitting")
    p.add_argument("--timeout", type=float, default=settings.ingestion_timeout)
    p.add_argument("--poll-interval", type=float, default=settings.poll_interval)
    p.add_argument("--max-lost-fraction", type=float, default=settings.max_lost_fraction)
    p.add_argument("--max-agent-restarts", type=int, default=settings.max_agent_restarts)
    p.add_argument("--agent-app-name", default=settings.agent_app_name)
    p.add_argument("--source", choices=("sql", "http"), default="sql")
    p.add_argument("--http-url", default="http://elasticsearch-logging:9200")
    p.add_argument("--http-index", default="logstash-*")
    p.add_argument("--init-schema", action="store_true", help="create the SQL tables if missing")
    p.add_argument(
        "--start-producers",
        action="store_true",
        help="emit synthetic lines through the SQL sink instead of relying on external producers",
    )
    p.add_argument("--skip-placement", action="store_true")
    p.add_argument("--skip-liveness", action="store_true")
    p.add_argument("--serve", action="store_true", help="expose /api/verification/* while the run is in progress")
    p.add_argument("--serve-host", default="0.0.0.0")
    p.add_argument("--serve-port", type=int, default=8080)
    p.add_argument(
        "--serve-linger",
        type=float,
        default=0.0,
        help="seconds to keep serving the final report after the run",
    )
    return p


def main(argv: Optional[List[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    args = _parser().parse_args(argv)
    settings = get_settings()

    if args.start_producers and args.source != "sql":
        logger.error("--start-producers writes through the SQL sink; it needs --source sql")
        return EXIT_CONFIG

    engine = get_engine(build_sqlalchemy_url(settings))
    if args.init_schema or args.start_producers:
        ensure_schema(engine, settings.log_table)

    inventory = SqlPlacementInventory(engine)
    try:
        nodes = inventory.eligible_nodes()
    except InventoryError as e:
        logger.error("Cannot list eligible nodes: %s", e)
        return EXIT_CONFIG
    if not nodes:
        logger.error("No eligible nodes found, nothing to verify")
        return EXIT_CONFIG

    try:
        producers = build_producers(nodes, args.producers_per_node, args.lines, args.duration)
        config = VerificationConfig(
            producers=producers,
            ingestion_timeout=args.timeout,
            max_allowed_lost_fraction=args.max_lost_fraction,
            max_allowed_agent_restarts=args.max_agent_restarts,
            poll_interval=args.poll_interval,
            agent_app_name=args.agent_app_name,
        )
    except ConfigurationError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_CONFIG

    log_source: LogSource
    if args.source == "http":
        log_source = HttpLogSource(args.http_url, index=args.http_index)
    else:
        log_source = SqlLogSource(engine, settings.log_table)

    producer = LogsGeneratorProducer(SqlLogSink(engine, settings.log_table)) if args.start_producers else None

    logger.info(
        "Verifier started producers=%d nodes=%d timeout=%.1fs interval=%.1fs",
        len(config.producers), len(nodes), config.ingestion_timeout, config.poll_interval,
    )

    runner = VerificationRunner(
        config,
        log_source,
        inventory,
        producer=producer,
        store=ReportStore.get_instance(),
    )
    server = BackgroundApiServer(args.serve_host, args.serve_port) if args.serve else None
    if server is not None:
        server.start()

    try:
        try:
            report = runner.run(
                check_placement=not args.skip_placement,
                wait_for_liveness=not args.skip_liveness,
            )
        except Exception:
            logger.exception("Verification run aborted")
            return EXIT_FAILED

        print(json.dumps(report.to_dict(), indent=2))
        for violation in report.violations:
            logger.error("VIOLATION %s: %s", violation.kind.value, violation.message)

        if server is not None and args.serve_linger > 0:
            logger.info("Serving final report for %.0fs", args.serve_linger)
            time.sleep(args.serve_linger)
    finally:
        if server is not None:
            server.stop()

    return EXIT_OK if report.ok else EXIT_FAILED


if __name__ == "__main__":
    raise SystemExit(main())
