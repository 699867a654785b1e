"""Configuration — Pydantic models for panemux settings."""

from __future__ import annotations

import json
import os
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


def _default_shell() -> str:
    return os.environ.get("SHELL") or "/bin/sh"


class LoggingConfig(BaseModel):
    """Where log records go while the screen belongs to the multiplexer."""

    file: str = Field(
        default="~/.panemux/panemux.log",
        description="Log file path; stderr is never used while panes are on screen",
    )
    level: str = Field(default="INFO", description="Root log level name")


class MuxConfig(BaseModel):
    """Top-level panemux configuration."""

    hotkey: int = Field(
        default=0x01, description="Single byte that cycles panes (default Ctrl-A)"
    )
    shell: str = Field(
        default_factory=_default_shell, description="Command run when none is given"
    )
    term: str = Field(
        default="xterm-256color", description="TERM exported to child processes"
    )
    default_cols: int = Field(
        default=80, description="Width used when the terminal size cannot be read"
    )
    default_rows: int = Field(
        default=24, description="Height used when the terminal size cannot be read"
    )
    read_chunk_size: int = Field(default=4096, description="Bytes per pty read")
    input_chunk_size: int = Field(default=1024, description="Bytes per stdin read")
    log_pane: bool = Field(
        default=False, description="Add a pane showing recent log records"
    )
    log_pane_lines: int = Field(default=200, description="Lines kept by the log pane")
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @field_validator("hotkey")
    @classmethod
    def _single_byte(cls, value: int) -> int:
        if not 0 <= value <= 0xFF:
            raise ValueError("hotkey must be a single byte (0-255)")
        return value

    @field_validator("default_cols", "default_rows", "read_chunk_size", "input_chunk_size")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be positive")
        return value

    @classmethod
    def load(cls, config_path: str | None = None) -> MuxConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            PANEMUX_HOTKEY    - Hotkey byte (decimal, or hex with 0x prefix)
            PANEMUX_SHELL     - Default command for new panes
            PANEMUX_TERM      - TERM for child processes
            PANEMUX_LOG_FILE  - Log file path
            PANEMUX_LOG_PANE  - "1"/"true" to show the log pane
        """
        load_dotenv()

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                config_data = json.load(f)

        env_hotkey = os.environ.get("PANEMUX_HOTKEY")
        if env_hotkey:
            config_data["hotkey"] = int(env_hotkey, 0)

        env_shell = os.environ.get("PANEMUX_SHELL")
        if env_shell:
            config_data["shell"] = env_shell

        env_term = os.environ.get("PANEMUX_TERM")
        if env_term:
            config_data["term"] = env_term

        env_log_pane = os.environ.get("PANEMUX_LOG_PANE")
        if env_log_pane:
            config_data["log_pane"] = env_log_pane.strip().lower() in ("1", "true", "yes", "on")

        env_log_file = os.environ.get("PANEMUX_LOG_FILE")
        if env_log_file:
            logging_data = dict(config_data.get("logging", {}))
            logging_data["file"] = env_log_file
            config_data["logging"] = logging_data

        return cls.model_validate(config_data)
