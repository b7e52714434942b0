"""Tests for the command-line interface."""

import pytest
from click.testing import CliRunner

from solarsync.cli import cli
from solarsync.config.settings import Settings
from solarsync.db.engine import create_engine, get_session
from solarsync.db.models import Organization, Vendor, VendorType


@pytest.fixture
def env_file(tmp_path, monkeypatch):
    """Write a .env pointing at a throwaway SQLite file."""
    # Leave the global structlog configuration alone
    monkeypatch.setattr("solarsync.config.logging.configure_logging", lambda settings: None)

    path = tmp_path / ".env"
    path.write_text(f"SOLARSYNC_DATABASE_URL=sqlite:///{tmp_path / 'cli.db'}\n")
    return path


def invoke(env_file, *args):
    return CliRunner().invoke(cli, ["--config", str(env_file), *args])


class TestCli:
    """Test the CLI commands against a file database."""

    def test_init_db(self, env_file, tmp_path):
        result = invoke(env_file, "init-db")

        assert result.exit_code == 0
        assert "Database initialized successfully" in result.output
        assert (tmp_path / "cli.db").exists()

    def test_status_without_vendors(self, env_file):
        invoke(env_file, "init-db")

        result = invoke(env_file, "status")

        assert result.exit_code == 0
        assert "No vendors configured" in result.output

    def test_status_lists_vendors(self, env_file):
        invoke(env_file, "init-db")
        engine = create_engine(Settings(_env_file=env_file))
        with get_session(engine) as session:
            org = Organization(name="Acme", auto_sync_enabled=True, sync_interval_minutes=30)
            session.add(org)
            session.flush()
            session.add(Vendor(name="Roof", vendor_type=VendorType.SOLARMAN, org_id=org.id))
        engine.dispose()

        result = invoke(env_file, "status")

        assert result.exit_code == 0
        assert "Roof" in result.output
        assert "30m" in result.output

    def test_sync_plants_with_no_vendors(self, env_file):
        invoke(env_file, "init-db")

        result = invoke(env_file, "sync-plants", "--force")

        assert result.exit_code == 0
        assert "No vendors were due for sync" in result.output

    def test_sync_unknown_vendor_fails(self, env_file):
        invoke(env_file, "init-db")

        result = invoke(env_file, "sync-plants", "--vendor", "42")

        assert result.exit_code == 1
        assert "Vendor not found: 42" in result.output
