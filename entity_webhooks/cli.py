"""Command-line interface for the webhook framework.

Commands:
    worker --app module:factory   Run the delivery worker
    status URL                    Print the failure record of a URL
    unblock URL                   Clear the failure record of a URL
"""

import argparse
import asyncio
import importlib
import inspect
import json
import signal
import sys
from collections.abc import Sequence

import structlog

from entity_webhooks.config import settings
from entity_webhooks.logging import configure_logging
from entity_webhooks.service import WebhookService

logger = structlog.get_logger(__name__)


async def load_service(app: str) -> WebhookService:
    """Build a service from a ``module:factory`` reference.

    The factory is called without arguments and may be a coroutine
    function.

    Raises:
        ValueError: The reference is malformed or the factory does not
            return a WebhookService.
    """
    module_name, _, attr = app.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Expected 'module:factory', got {app!r}")

    module = importlib.import_module(module_name)
    factory = getattr(module, attr)
    service = factory()
    if inspect.isawaitable(service):
        service = await service
    if not isinstance(service, WebhookService):
        raise ValueError(f"{app} returned {type(service).__name__}, expected WebhookService")
    return service


async def run_worker_command(args: argparse.Namespace) -> int:
    """Execute the 'worker' command.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    try:
        service = await load_service(args.app)
    except (ImportError, AttributeError, ValueError) as e:
        logger.error("worker_app_load_failed", app=args.app, error=str(e))
        return 1

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, service.worker.stop)
        except NotImplementedError:
            pass

    logger.info("worker_command_started", app=args.app, webhooks=sorted(service.registry.get_all()))
    try:
        await service.worker.run()
    finally:
        await service.shutdown()
    return 0


async def run_status_command(args: argparse.Namespace) -> int:
    """Execute the 'status' command."""
    service = WebhookService.from_settings(settings)
    try:
        record = await service.status(args.url)
    finally:
        await service.shutdown()

    output = {"url": args.url, "state": record.state.value, **record.model_dump()}
    print(json.dumps(output, indent=2))
    return 0


async def run_unblock_command(args: argparse.Namespace) -> int:
    """Execute the 'unblock' command."""
    service = WebhookService.from_settings(settings)
    try:
        await service.unblock(args.url)
    finally:
        await service.shutdown()

    print(f"Unblocked {args.url}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="entity-webhooks",
        description="Entity webhook delivery CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--log-level",
        default=settings.LOG_LEVEL,
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--log-format",
        default=settings.LOG_FORMAT,
        choices=["json", "text"],
        help="Log output format",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    worker_parser = subparsers.add_parser("worker", help="Run the delivery worker")
    worker_parser.add_argument(
        "--app",
        required=True,
        help="Service factory as 'module:function'",
    )

    status_parser = subparsers.add_parser("status", help="Show the failure record of a URL")
    status_parser.add_argument("url", help="Webhook URL")

    unblock_parser = subparsers.add_parser("unblock", help="Clear the failure record of a URL")
    unblock_parser.add_argument("url", help="Webhook URL")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main entry point for CLI.

    Returns:
        Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(level=args.log_level, format=args.log_format)

    if args.command == "worker":
        return asyncio.run(run_worker_command(args))
    elif args.command == "status":
        return asyncio.run(run_status_command(args))
    elif args.command == "unblock":
        return asyncio.run(run_unblock_command(args))

    return 1


if __name__ == "__main__":
    sys.exit(main())
