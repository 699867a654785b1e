"""CLI entry point for panemux."""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import signal
import sys
import termios
import tty

import typer

from panemux import escapes
from panemux.config import MuxConfig
from panemux.errors import SpawnError
from panemux.manager import SessionManager
from panemux.pane import PanePosition

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="panemux",
    help="Run several commands in pseudo-terminals and flip between them with a hotkey.",
    no_args_is_help=True,
)

LAYOUTS = ("full", "split")


def setup_logging(config: MuxConfig, verbose: bool = False) -> str:
    """Send log records to the configured file and return its path.

    No stderr handler is installed: the terminal belongs to the panes and
    a stray log line would corrupt the picture.
    """
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level.upper(), logging.INFO)
    path = os.path.expanduser(config.logging.file)
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

    root = logging.getLogger()
    for h in root.handlers[:]:
        root.removeHandler(h)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        handlers=[logging.FileHandler(path, encoding="utf-8")],
    )
    return path


def pane_positions(layout: str, count: int) -> list[PanePosition]:
    """Positions for ``count`` panes; ``split`` alternates left and right."""
    if layout == "split":
        return [PanePosition.LEFT if i % 2 == 0 else PanePosition.RIGHT for i in range(count)]
    return [PanePosition.FULL_SCREEN] * count


@app.command()
def run(
    command: list[str] | None = typer.Option(
        None,
        "--command",
        "-e",
        help="Command to run in its own pane (repeatable; default: your shell).",
    ),
    layout: str = typer.Option(
        "full", "--layout", "-l", help="Pane layout: 'full' or 'split' (left/right)."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging."
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Start the multiplexer. The hotkey (Ctrl-A by default) cycles panes."""
    config = MuxConfig.load(config_file)

    if layout not in LAYOUTS:
        typer.echo(f"Error: unknown layout {layout!r} (use one of: {', '.join(LAYOUTS)})", err=True)
        raise typer.Exit(2)
    if not sys.stdin.isatty():
        typer.echo("Error: panemux must be run from an interactive terminal.", err=True)
        raise typer.Exit(1)

    argvs = [shlex.split(c) for c in command or [] if c.strip()]
    if not argvs:
        argvs = [shlex.split(config.shell)]

    log_path = setup_logging(config, verbose)
    logger.info("Starting %d pane(s), layout=%s", len(argvs), layout)

    try:
        asyncio.run(_run_panes(argvs, pane_positions(layout, len(argvs)), config))
    except SpawnError as e:
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"See {log_path} for details.", err=True)
        raise typer.Exit(1)

    typer.echo("All sessions finished. Exiting.")


async def _run_panes(
    argvs: list[list[str]], positions: list[PanePosition], config: MuxConfig
) -> None:
    stdin_fd = sys.stdin.fileno()
    old_attrs = termios.tcgetattr(stdin_fd)
    loop = asyncio.get_running_loop()
    sm = SessionManager(
        config,
        output=sys.stdout.buffer,
        input_fd=stdin_fd,
        size_fd=stdin_fd,
        watch_resize=True,
    )

    def _terminate() -> None:
        logger.info("SIGTERM received, closing all panes")
        for pane in sm.panes:
            sm.close(pane)

    tty.setraw(stdin_fd)
    loop.add_signal_handler(signal.SIGTERM, _terminate)
    try:
        await sm.start()
        last = None
        for argv, position in zip(argvs, positions):
            last = await sm.create(argv, position)
        if last is not None:
            sm.select(last)
        await sm.wait()
    finally:
        loop.remove_signal_handler(signal.SIGTERM)
        await sm.stop()
        termios.tcsetattr(stdin_fd, termios.TCSADRAIN, old_attrs)
        sys.stdout.write(
            escapes.APP_CURSOR_OFF
            + escapes.APP_KEYPAD_OFF
            + escapes.SGR_RESET
            + escapes.CLEAR_SCREEN_HOME
        )
        sys.stdout.flush()


@app.command("config")
def show_config(
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
) -> None:
    """Print the effective configuration as JSON."""
    config = MuxConfig.load(config_file)
    typer.echo(config.model_dump_json(indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
