"""CLI entry point for oceanctl.

:func:`main` is the console-script entry point declared in
``pyproject.toml``. It loads the configuration file, assembles and binds the
command tree, builds the Typer application and runs it. Errors from
handlers are reported by the runner; an :class:`OceanctlError` raised while
starting up (an unreadable config file) is reported here, and anything else
is written to a crash log under the data directory.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from oceanctl.commands.root import build_tree
from oceanctl.commands.runner import ClientFactory, build_app
from oceanctl.commands.tree import bind_tree
from oceanctl.config import Config, get_data_dir, load_config
from oceanctl.exceptions import OceanctlError
from oceanctl.exit_codes import EXIT_GENERIC_FAILURE
from oceanctl.output import error


def create_app(
    config: Optional[Config] = None,
    client_factory: Optional[ClientFactory] = None,
) -> typer.Typer:
    """Build the oceanctl application.

    Args:
        config: Configuration store; loaded from the config file and the
            process environment when omitted.
        client_factory: Override for the API client construction.
    """
    if config is None:
        config = load_config()
    root = build_tree()
    bind_tree(config, root)
    return build_app(root, config, client_factory)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log() -> str:
    """Write the current traceback to disk and return the log file path."""
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = get_data_dir() / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc(), encoding="utf-8")
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``oceanctl`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app = create_app()
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except OceanctlError as exc:
        error(str(exc))
        sys.exit(exc.exit_code)
    except Exception:
        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
