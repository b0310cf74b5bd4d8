from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_AGENT_APP_NAME = "fluentd-logging"
DEFAULT_LOG_TABLE = "ingested_log_entries"


def _default_env_file() -> str:
    return str(Path.cwd() / ".env")


@dataclass(frozen=True)
class Settings:
    db_host: str
    db_port: int
    db_user: str
    db_password: str
    db_name: str

    odbc_driver: str

    # Explicit URL wins over the DB_* pieces (sqlite, postgres, ...).
    db_url: Optional[str]
    log_table: str

    ingestion_timeout: float
    poll_interval: float
    max_lost_fraction: float
    max_agent_restarts: int
    agent_app_name: str


def get_settings() -> Settings:
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("VERIFIER_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    db_host = os.getenv("DB_HOST", "localhost")
    db_port = int(os.getenv("DB_PORT", "1434"))
    db_user = os.getenv("DB_USER", "sa")
    db_password = os.getenv("DB_PASSWORD", "")
    db_name = os.getenv("DB_NAME", "logging_e2e")

    # Common values:
    # - ODBC Driver 17 for SQL Server
    # - ODBC Driver 18 for SQL Server
    odbc_driver = os.getenv("ODBC_DRIVER", "ODBC Driver 17 for SQL Server")

    return Settings(
        db_host=db_host,
        db_port=db_port,
        db_user=db_user,
        db_password=db_password,
        db_name=db_name,
        odbc_driver=odbc_driver,
        db_url=os.getenv("VERIFIER_DB_URL") or None,
        log_table=os.getenv("VERIFIER_LOG_TABLE", DEFAULT_LOG_TABLE),
        ingestion_timeout=float(os.getenv("VERIFIER_INGESTION_TIMEOUT", "600")),
        poll_interval=float(os.getenv("VERIFIER_POLL_INTERVAL", "30")),
        max_lost_fraction=float(os.getenv("VERIFIER_MAX_LOST_FRACTION", "0")),
        max_agent_restarts=int(os.getenv("VERIFIER_MAX_AGENT_RESTARTS", "0")),
        agent_app_name=os.getenv("VERIFIER_AGENT_APP_NAME", DEFAULT_AGENT_APP_NAME),
    )
