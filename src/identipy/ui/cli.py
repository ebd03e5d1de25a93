from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv
from pydantic import ValidationError

from identipy.app import identify_contact
from identipy.config import ConfigurationError, configure_logging, get_server_config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile customer contact identities")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    identify = subparsers.add_parser("identify", help="Reconcile one email/phone fragment")
    identify.add_argument(
        "--email",
        type=str,
        help="Email address of the fragment",
    )
    identify.add_argument(
        "--phone",
        type=str,
        help="Phone number of the fragment",
    )

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument(
        "--host",
        type=str,
        default=None,
        help="Interface to bind (defaults to config)",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (defaults to config)",
    )

    db = subparsers.add_parser("db", help="Database management commands")
    db_sub = db.add_subparsers(dest="db_command", required=True)
    db_sub.add_parser("upgrade", help="Apply schema migrations up to the latest revision")

    return parser.parse_args(list(argv))


def _identify(args: argparse.Namespace) -> None:
    from identipy.ui.schema import IdentifyRequest, IdentifyResponse  # noqa: PLC0415

    request = IdentifyRequest(email=args.email, phone_number=args.phone)
    view = identify_contact(request.email, request.phone_number)
    print(IdentifyResponse.from_view(view).model_dump_json(by_alias=True, indent=2))  # noqa: T201


def _serve(args: argparse.Namespace) -> None:
    import uvicorn  # noqa: PLC0415

    from identipy.app import default_unit_of_work_factory  # noqa: PLC0415
    from identipy.ui.api import create_app  # noqa: PLC0415

    config = get_server_config()
    host = args.host or config.host
    port = args.port or config.port
    app = create_app(default_unit_of_work_factory(), config=config)
    log.info("Serving identity reconciliation API on http://%s:%s", host, port)
    uvicorn.run(app, host=host, port=port, log_config=None)


def _upgrade_database() -> None:
    from identipy.adapters.sqlalchemy.migrations import upgrade_head  # noqa: PLC0415

    upgrade_head()
    log.info("Database schema is up to date")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "identify":
            _identify(parsed_args)
        elif parsed_args.command == "serve":
            _serve(parsed_args)
        elif parsed_args.command == "db" and parsed_args.db_command == "upgrade":
            _upgrade_database()
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (ValidationError, ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console-script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
