"""Tests for the session maintenance command line."""

import asyncio
import json
from pathlib import Path

import pytest

from orderflow.cli import build_parser, main, run_command, serve_sweeps
from orderflow.compaction import SessionOptimizer
from orderflow.config.models.compaction import CompactionConfig
from orderflow.config.models.observability import MetricsConfig
from orderflow.errors import SessionNotFoundError
from orderflow.sessions import SessionService
from orderflow.sessions.models import Session
from orderflow.sessions.stores import InMemorySessionStorage


@pytest.fixture
def cli_service() -> SessionService:
    """Service whose save path never compacts, so optimize has work to do."""
    return SessionService(
        storage=InMemorySessionStorage(),
        optimizer=SessionOptimizer(CompactionConfig(size_threshold_bytes=10_000_000)),
        cache_ttl_seconds=0,
    )


@pytest.fixture
def config_dir(mock_toml_files, test_config_dir: Path, tmp_path: Path, monkeypatch) -> Path:
    """Config directory pointing the jsonfile backend at a temporary file."""
    # main() would point the global structlog config at the captured stderr
    monkeypatch.setattr("orderflow.cli.setup_logging", lambda **kwargs: None)
    sessions_file = tmp_path / "sessions.json"
    mock_toml_files(
        {
            "default.toml": (
                f'[storage]\nbackend = "jsonfile"\npath = "{sessions_file.as_posix()}"\n'
                "cache_ttl_seconds = 0\n"
            ),
        }
    )
    monkeypatch.setenv("ORDERFLOW_CONFIG_DIR", str(test_config_dir))
    monkeypatch.setenv("ORDERFLOW_ENV", "test")
    return test_config_dir


class TestParser:
    """Tests for argument parsing."""

    def test_sweep_dry_run(self) -> None:
        args = build_parser().parse_args(["sweep", "--dry-run"])

        assert args.command == "sweep"
        assert args.dry_run is True

    def test_session_commands_take_key(self) -> None:
        args = build_parser().parse_args(["check", "7", "8"])

        assert (args.user_id, args.chat_id) == (7, 8)

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_key_must_be_numeric(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["delete", "alice", "1"])


class TestServeSweeps:
    """Tests for the foreground sweep loop."""

    def test_schedule_interval(self) -> None:
        args = build_parser().parse_args(["schedule", "--interval", "30"])

        assert args.interval == 30.0

    @pytest.mark.asyncio
    async def test_runs_until_stopped(
        self, cli_service: SessionService, registered_session: Session
    ):
        await cli_service.save(1, 1, registered_session)
        stop = asyncio.Event()

        task = asyncio.create_task(
            serve_sweeps(cli_service, MetricsConfig(enabled=False), 3600, stop)
        )
        await asyncio.sleep(0.05)
        stop.set()
        result = await task

        assert result is not None
        assert result.removed == 1
        assert await cli_service.list_all() == []


class TestRunCommand:
    """Tests for command execution against a service."""

    @pytest.mark.asyncio
    async def test_stats(self, cli_service: SessionService, registered_session: Session):
        await cli_service.save(1, 1, registered_session)

        result = await run_command(build_parser().parse_args(["stats"]), cli_service)

        assert result["total"] == 1
        assert result["registered"] == 1

    @pytest.mark.asyncio
    async def test_check(self, cli_service: SessionService, registered_session: Session):
        await cli_service.save(1, 1, registered_session)

        result = await run_command(build_parser().parse_args(["check", "1", "1"]), cli_service)

        assert result["is_oversized"] is False
        assert result["size_bytes"] > 0

    @pytest.mark.asyncio
    async def test_optimize(self, cli_service: SessionService, registered_session: Session):
        registered_session.selection.catalog_cache = {
            "products": [{"id": i, "name": f"Product {i}"} for i in range(50)]
        }
        await cli_service.save(1, 1, registered_session)

        dry = await run_command(
            build_parser().parse_args(["optimize", "1", "1", "--dry-run"]), cli_service
        )
        assert "selection.catalog_cache" in dry["removed_fields"]
        assert (await cli_service.get(1, 1)).selection.catalog_cache

        result = await run_command(build_parser().parse_args(["optimize", "1", "1"]), cli_service)

        assert result["bytes_saved"] > 0
        assert result["dry_run"] is False
        assert (await cli_service.get(1, 1)).selection.catalog_cache == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("command", ["check", "optimize"])
    async def test_inspecting_missing_key_creates_nothing(
        self, cli_service: SessionService, command: str
    ):
        with pytest.raises(SessionNotFoundError):
            await run_command(build_parser().parse_args([command, "9", "9"]), cli_service)

        assert await cli_service.storage.read("9:9") is None

    @pytest.mark.asyncio
    async def test_delete(self, cli_service: SessionService, registered_session: Session):
        await cli_service.save(1, 1, registered_session)

        first = await run_command(build_parser().parse_args(["delete", "1", "1"]), cli_service)
        second = await run_command(build_parser().parse_args(["delete", "1", "1"]), cli_service)

        assert first == {"removed": True}
        assert second == {"removed": False}

    @pytest.mark.asyncio
    async def test_sweep_dry_run_keeps_sessions(
        self, cli_service: SessionService, registered_session: Session
    ):
        # The fixture session was created in 2025 and has long expired
        await cli_service.save(1, 1, registered_session)

        result = await run_command(build_parser().parse_args(["sweep", "--dry-run"]), cli_service)

        assert result["removed"] == 1
        assert result["dry_run"] is True
        assert await cli_service.list_all()


class TestMain:
    """Tests for the console entry point."""

    def test_stats_prints_json(self, config_dir: Path, capsys) -> None:
        exit_code = main(["stats"])

        assert exit_code == 0
        result = json.loads(capsys.readouterr().out)
        assert result["total"] == 0

    def test_corrupt_store_fails(self, config_dir: Path, tmp_path: Path, capsys) -> None:
        (tmp_path / "sessions.json").write_text("{not json")

        exit_code = main(["stats"])

        assert exit_code == 1
        assert "Error:" in capsys.readouterr().err
        assert (tmp_path / "sessions.json").read_text() == "{not json"

    def test_check_missing_key_fails(self, config_dir: Path, tmp_path: Path, capsys) -> None:
        exit_code = main(["check", "9", "9"])

        assert exit_code == 1
        assert "Session 9:9 not found" in capsys.readouterr().err
        assert not (tmp_path / "sessions.json").exists()

    def test_help_warns_about_shared_file(self, capsys) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--help"])

        assert "Locks are per process" in capsys.readouterr().out
