"""Tests de configuración (Settings, VerificationConfig) y del CLI.

Ejecutar:
    pytest tests/test_config_cli.py -v
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text

from common.config import get_settings
from common.db import build_sqlalchemy_url
from ingest_verifier.api.main import app
from ingest_verifier.config import DEFAULT_POLL_INTERVAL, VerificationConfig
from ingest_verifier.errors import ConfigurationError
from ingest_verifier.sources import ensure_schema
from ingest_verifier.store import ReportStore
from jobs.verify import cli
from jobs.verify.cli import EXIT_CONFIG, EXIT_OK, build_producers, main


def _seed_cluster(url):
    engine = create_engine(url, future=True)
    ensure_schema(engine)
    with engine.begin() as conn:
        for node in ("node-a", "node-b"):
            conn.execute(
                text("INSERT INTO cluster_nodes (name, ready, schedulable) VALUES (:n, :t, :t)"),
                {"n": node, "t": True},
            )
            conn.execute(
                text(
                    "INSERT INTO agent_instances (name, app_name, node_name, restart_count) "
                    "VALUES (:a, 'fluentd-logging', :n, 0)"
                ),
                {"a": f"fluentd-{node}", "n": node},
            )
    engine.dispose()


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    monkeypatch.setenv("VERIFIER_ENV_FILE", str(tmp_path / "missing.env"))
    for var in (
        "VERIFIER_DB_URL",
        "VERIFIER_INGESTION_TIMEOUT",
        "VERIFIER_POLL_INTERVAL",
        "VERIFIER_MAX_LOST_FRACTION",
        "VERIFIER_MAX_AGENT_RESTARTS",
        "VERIFIER_AGENT_APP_NAME",
        "VERIFIER_LOG_TABLE",
    ):
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


# =============================================================================
# SETTINGS
# =============================================================================

class TestSettings:
    """Settings desde variables de entorno y archivo .env."""

    def test_defaults(self, clean_env):
        settings = get_settings()

        assert settings.ingestion_timeout == 600.0
        assert settings.poll_interval == 30.0
        assert settings.max_lost_fraction == 0.0
        assert settings.max_agent_restarts == 0
        assert settings.agent_app_name == "fluentd-logging"
        assert build_sqlalchemy_url(settings).startswith("mssql+pyodbc:///?odbc_connect=")

    def test_env_overrides(self, clean_env):
        clean_env.setenv("VERIFIER_MAX_LOST_FRACTION", "0.05")
        clean_env.setenv("VERIFIER_MAX_AGENT_RESTARTS", "2")
        clean_env.setenv("VERIFIER_DB_URL", "sqlite:///x.db")

        settings = get_settings()

        assert settings.max_lost_fraction == 0.05
        assert settings.max_agent_restarts == 2
        assert build_sqlalchemy_url(settings) == "sqlite:///x.db"

    def test_env_file_loaded(self, clean_env, tmp_path):
        env_file = tmp_path / "verifier.env"
        env_file.write_text("VERIFIER_AGENT_APP_NAME=fluent-bit\n")
        clean_env.setenv("VERIFIER_ENV_FILE", str(env_file))
        # load_dotenv writes os.environ directly; register the var so it gets restored.
        clean_env.setenv("VERIFIER_AGENT_APP_NAME", "placeholder")
        clean_env.delenv("VERIFIER_AGENT_APP_NAME")

        assert get_settings().agent_app_name == "fluent-bit"


# =============================================================================
# VERIFICATION CONFIG
# =============================================================================

class TestVerificationConfig:
    """Validación de la configuración inmutable."""

    def test_total_expected_lines(self, make_record):
        config = VerificationConfig(
            producers=[make_record("a", lines=10), make_record("b", lines=5)],
            ingestion_timeout=60,
            max_allowed_lost_fraction=0.0,
            max_allowed_agent_restarts=0,
        )

        assert config.total_expected_lines == 15
        assert isinstance(config.producers, tuple)
        assert config.poll_interval == DEFAULT_POLL_INTERVAL

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_allowed_lost_fraction": 1.5},
            {"max_allowed_lost_fraction": -0.1},
            {"max_allowed_agent_restarts": -1},
            {"ingestion_timeout": -1},
            {"poll_interval": -5},
        ],
    )
    def test_invalid_values_rejected(self, make_record, kwargs):
        params = dict(
            producers=[make_record("a")],
            ingestion_timeout=60,
            max_allowed_lost_fraction=0.0,
            max_allowed_agent_restarts=0,
        )
        params.update(kwargs)

        with pytest.raises(ConfigurationError):
            VerificationConfig(**params)

    def test_duplicate_producer_names_rejected(self, make_record):
        with pytest.raises(ConfigurationError):
            VerificationConfig(
                producers=[make_record("a"), make_record("a")],
                ingestion_timeout=60,
                max_allowed_lost_fraction=0.0,
                max_allowed_agent_restarts=0,
            )

    def test_from_settings(self, clean_env, make_record):
        clean_env.setenv("VERIFIER_POLL_INTERVAL", "5")
        clean_env.setenv("VERIFIER_AGENT_APP_NAME", "fluent-bit")

        config = VerificationConfig.from_settings(get_settings(), [make_record("a")])

        assert config.poll_interval == 5.0
        assert config.agent_app_name == "fluent-bit"


# =============================================================================
# CLI
# =============================================================================

class TestCli:
    """Job de verificación de punta a punta contra SQLite."""

    def test_build_producers_one_per_node_and_index(self):
        producers = build_producers({"node-b", "node-a"}, producers_per_node=2, lines=100, duration=60.0)

        assert [p.name for p in producers] == [
            "synthlogger-node-a-0",
            "synthlogger-node-a-1",
            "synthlogger-node-b-0",
            "synthlogger-node-b-1",
        ]
        assert {p.placement_target for p in producers} == {"node-a", "node-b"}
        assert all(p.expected_line_count == 100 for p in producers)

    def test_no_nodes_is_configuration_error(self, clean_env, tmp_path):
        clean_env.setenv("VERIFIER_DB_URL", f"sqlite:///{tmp_path / 'empty.db'}")

        assert main(["--init-schema"]) == EXIT_CONFIG

    def test_end_to_end_with_synthetic_producers(self, clean_env, tmp_path, capsys):
        url = f"sqlite:///{tmp_path / 'e2e.db'}"
        clean_env.setenv("VERIFIER_DB_URL", url)
        _seed_cluster(url)

        code = main([
            "--start-producers",
            "--lines", "20",
            "--duration", "0",
            "--timeout", "20",
            "--poll-interval", "0.05",
        ])

        assert code == EXIT_OK
        assert '"passed": true' in capsys.readouterr().out

    def test_start_producers_requires_sql_source(self, clean_env, tmp_path):
        clean_env.setenv("VERIFIER_DB_URL", f"sqlite:///{tmp_path / 'http.db'}")

        assert main(["--source", "http", "--start-producers"]) == EXIT_CONFIG

    def test_serve_exposes_the_run_in_process(self, clean_env, tmp_path, monkeypatch):
        servers = []

        class FakeServer:
            def __init__(self, host, port):
                self.host, self.port = host, port
                self.events = []
                servers.append(self)

            def start(self):
                self.events.append(("start", ReportStore.get_instance().get_progress()["state"]))

            def stop(self):
                self.events.append(("stop", ReportStore.get_instance().get_progress()["state"]))

        monkeypatch.setattr(cli, "BackgroundApiServer", FakeServer)
        url = f"sqlite:///{tmp_path / 'serve.db'}"
        clean_env.setenv("VERIFIER_DB_URL", url)
        _seed_cluster(url)

        code = main([
            "--start-producers",
            "--lines", "5",
            "--duration", "0",
            "--timeout", "20",
            "--poll-interval", "0.05",
            "--serve",
            "--serve-port", "18080",
        ])

        assert code == EXIT_OK
        assert servers[0].port == 18080
        assert servers[0].events == [("start", "not_started"), ("stop", "passed")]
        report = TestClient(app).get("/api/verification/report")
        assert report.status_code == 200
        assert report.json()["passed"] is True
