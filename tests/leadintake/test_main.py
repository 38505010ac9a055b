"""Tests for the operator CLI."""

import json
import os
import sys
from unittest.mock import patch

import pytest

# Ensure repo root is on sys.path so imports work correctly
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
SRC_DIR = os.path.join(ROOT_DIR, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from leadintake.config import Config
from leadintake.main import create_parser, main


@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """Environment pointing the CLI at a fresh SQLite database."""
    for name in ("SENDGRID_API_KEY", "DEBUG", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    return monkeypatch


def run_cli(argv, capsys):
    """Run the CLI with logging setup stubbed and return (code, parsed JSON)."""
    with patch("leadintake.main.setup_logging"):
        code = main(argv, cfg=Config())
    return code, json.loads(capsys.readouterr().out)


class TestParser:
    """Tests for argument parsing."""

    def test_command_is_required(self):
        """Running without a subcommand is an error."""
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_list_status_choices(self):
        """list only accepts known notification statuses."""
        args = create_parser().parse_args(["list", "--status", "failed", "--limit", "5"])
        assert args.status == "failed"
        assert args.limit == 5
        with pytest.raises(SystemExit):
            create_parser().parse_args(["list", "--status", "bounced"])

    def test_worker_interval_overrides(self):
        """Worker intervals default to None so configuration applies."""
        args = create_parser().parse_args(["--verbose", "worker", "--poll-interval", "5"])
        assert args.verbose is True
        assert args.poll_interval == 5.0
        assert args.sweep_interval is None


class TestCommands:
    """Tests for end-to-end CLI commands against SQLite."""

    def test_missing_database_url(self, cli_env, capsys):
        """Without DATABASE_URL the CLI exits with a configuration error."""
        cli_env.delenv("DATABASE_URL")
        code, output = run_cli(["stats"], capsys)
        assert code == 2
        assert output["status"] == "error"
        assert "DATABASE_URL" in output["error"]

    def test_init_db_then_stats(self, cli_env, capsys):
        """Tables are created and stats report an empty system."""
        code, output = run_cli(["init-db"], capsys)
        assert code == 0
        assert output["status"] == "ok"

        code, output = run_cli(["stats"], capsys)
        assert code == 0
        assert output["email_configured"] is False
        assert output["queue"]["total"] == 0
        assert output["inquiries"]["total"] == 0
        assert output["quotes"]["conversion_rate"] == 0.0

    def test_process_and_list_empty_queue(self, cli_env, capsys):
        """Draining an empty queue processes nothing."""
        run_cli(["init-db"], capsys)

        code, output = run_cli(["process", "--batch-size", "5"], capsys)
        assert code == 0
        assert output == {"processed": 0, "succeeded": 0, "failed": 0}

        code, output = run_cli(["list", "--status", "pending"], capsys)
        assert code == 0
        assert output["data"] == []

    def test_retry_unknown_notification(self, cli_env, capsys):
        """Retrying an unknown ID exits non-zero with an error payload."""
        run_cli(["init-db"], capsys)

        code, output = run_cli(["retry", "00000000-0000-0000-0000-000000000000"], capsys)

        assert code == 1
        assert output["status"] == "error"
