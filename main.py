"""Command-line entry point for the FileCabinet API server, web UI and database setup."""

from __future__ import annotations

import argparse
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import uvicorn

from filecabinet.config import config
from filecabinet.errors import StorageError
from filecabinet.storage import DocumentStore

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import Logger

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_UI = PROJECT_ROOT / "ui.py"
APP_FACTORY = "filecabinet.api:create_app"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Run the FileCabinet PDF chat service.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API server.")
    serve.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind address for the API server (default: 127.0.0.1).",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port for the API server (default: 3000).",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change.",
    )

    ui = subparsers.add_parser("ui", help="Launch the Streamlit web UI.")
    ui.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_UI,
        help="Path to the Streamlit script (default: ui.py).",
    )
    ui.add_argument(
        "--port",
        type=int,
        default=8501,
        help="Port for the Streamlit server (default: 8501).",
    )
    ui.add_argument(
        "--address",
        default="localhost",
        help="Bind address for the Streamlit server (default: localhost).",
    )
    ui.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open Streamlit in a browser window instead of headless mode.",
    )
    ui.set_defaults(headless=True)

    init_db = subparsers.add_parser("init-db", help="Create the database schema.")
    init_db.add_argument(
        "--db-path",
        type=Path,
        default=None,
        help="SQLite database file (default: DATABASE_PATH).",
    )

    return parser.parse_args(argv)


def build_streamlit_command(
    script_path: Path,
    *,
    port: int,
    headless: bool,
    address: str,
) -> list[str]:
    """Construct the streamlit CLI invocation."""  # noqa: DOC201
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(script_path),
        "--server.port",
        str(port),
        "--server.address",
        address,
        "--server.headless",
        "true" if headless else "false",
    ]


def run_streamlit(command: Sequence[str], logger: Logger) -> int:
    """Execute the configured streamlit command and return its exit code."""  # noqa: DOC201
    try:
        result = subprocess.run(
            command,
            check=False,
            cwd=PROJECT_ROOT,
        )
    except KeyboardInterrupt:
        logger.info("FileCabinet UI stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return result.returncode


def run_server(args: argparse.Namespace, logger: Logger) -> int:
    """Validate configuration and serve the API until interrupted."""  # noqa: DOC201
    try:
        config.validate()
    except ValueError:
        logger.exception("Configuration invalid")
        return 1

    logger.info("Starting FileCabinet API at http://%s:%s", args.host, args.port)
    uvicorn.run(
        APP_FACTORY,
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )
    return 0


def run_ui(args: argparse.Namespace, logger: Logger) -> int:
    """Launch the Streamlit UI and return its exit code."""  # noqa: DOC201
    script_path = (
        args.app if args.app.is_absolute() else (PROJECT_ROOT / args.app)
    ).resolve()
    if not script_path.exists():
        logger.error("Streamlit script not found: %s", script_path)
        return 1

    logger.info(
        "Starting FileCabinet UI at http://%s:%s (headless=%s, API at %s)",
        args.address,
        args.port,
        args.headless,
        config.API_BASE_URL,
    )

    command = build_streamlit_command(
        script_path,
        port=args.port,
        headless=args.headless,
        address=args.address,
    )

    return_code = run_streamlit(command, logger)
    if return_code != 0:
        logger.error("Streamlit exited with status %s", return_code)
    return return_code


def run_init_db(args: argparse.Namespace, logger: Logger) -> int:
    """Create the document store schema."""  # noqa: DOC201
    store = DocumentStore(db_path=args.db_path)
    try:
        store.initialize()
    except StorageError:
        logger.exception("Error setting up database")
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Dispatch to the selected subcommand."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    handlers = {
        "serve": run_server,
        "ui": run_ui,
        "init-db": run_init_db,
    }
    return handlers[args.command](args, logger)


if __name__ == "__main__":
    sys.exit(main())
