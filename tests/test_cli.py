"""Tests for the panemux CLI."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from panemux.cli import app, pane_positions, setup_logging
from panemux.config import LoggingConfig, MuxConfig
from panemux.pane import PanePosition

runner = CliRunner()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


class TestPanePositions:
    def test_full(self) -> None:
        assert pane_positions("full", 2) == [PanePosition.FULL_SCREEN] * 2

    def test_split_alternates(self) -> None:
        assert pane_positions("split", 3) == [
            PanePosition.LEFT,
            PanePosition.RIGHT,
            PanePosition.LEFT,
        ]


class TestSetupLogging:
    def test_logs_to_file_only(self, tmp_path: Path, restore_root_logger) -> None:
        config = MuxConfig(logging=LoggingConfig(file=str(tmp_path / "logs" / "mux.log")))
        path = setup_logging(config)
        root = logging.getLogger()
        assert [type(h) for h in root.handlers] == [logging.FileHandler]
        assert root.level == logging.INFO

        logging.getLogger("panemux.test").info("written to file")
        root.handlers[0].flush()
        assert "written to file" in Path(path).read_text()

    def test_verbose_enables_debug(self, tmp_path: Path, restore_root_logger) -> None:
        config = MuxConfig(logging=LoggingConfig(file=str(tmp_path / "mux.log")))
        setup_logging(config, verbose=True)
        assert logging.getLogger().level == logging.DEBUG


class TestCommands:
    def test_config_prints_json(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("PANEMUX_HOTKEY", raising=False)
        path = tmp_path / "panemux.json"
        path.write_text(json.dumps({"term": "screen"}))
        result = runner.invoke(app, ["config", "--config", str(path)])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["hotkey"] == 1
        assert data["term"] == "screen"

    def test_run_rejects_unknown_layout(self) -> None:
        result = runner.invoke(app, ["run", "--layout", "grid"])
        assert result.exit_code == 2
        assert "unknown layout" in result.output

    def test_run_requires_a_terminal(self) -> None:
        # CliRunner feeds stdin from a buffer, which is never a TTY
        result = runner.invoke(app, ["run", "-e", "true"])
        assert result.exit_code == 1
        assert "interactive terminal" in result.output
