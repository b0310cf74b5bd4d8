from __future__ import annotations

from typing import Optional
from urllib.parse import quote_plus
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, get_settings


logger = logging.getLogger(__name__)


def build_sqlalchemy_url(settings: Settings) -> str:
    if settings.db_url:
        return settings.db_url

    # Use the recommended odbc_connect form.
    # This handles:
    # - passwords with special characters
    # - driver names with spaces
    # - SQL Server port syntax (SERVER=host,port)
    odbc_str = (
        f"DRIVER={{{settings.odbc_driver}}};"
        f"SERVER={settings.db_host},{settings.db_port};"
        f"DATABASE={settings.db_name};"
        f"UID={settings.db_user};"
        f"PWD={settings.db_password};"
        "TrustServerCertificate=yes;"
    )

    return f"mssql+pyodbc:///?odbc_connect={quote_plus(odbc_str)}"


def get_engine(url: Optional[str] = None, *, probe: bool = True) -> Engine:
    if url is None:
        settings = get_settings()
        url = build_sqlalchemy_url(settings)

    engine = create_engine(url, pool_pre_ping=True, future=True)
    logger.info("[DB] Engine created dialect=%s", engine.dialect.name)

    # Connection probe; failures surface again on the first real query.
    if probe:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("[DB] Connection test OK")
        except SQLAlchemyError:
            logger.exception("[DB] Connection test FAILED")

    return engine
