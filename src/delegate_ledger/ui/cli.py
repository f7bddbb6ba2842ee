from __future__ import annotations

import argparse
import logging
import sys
import threading
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from delegate_ledger.adapters.catalog_file import load_catalog
from delegate_ledger.app import (
    build_transfer,
    catalog_report,
    list_for_marketplace,
    owner_delegates,
    reconcile_pending,
    register_delegate,
    run_reconciliation_loop,
)
from delegate_ledger.config import configure_logging, get_catalog_settings
from delegate_ledger.domain.errors import ValidationError

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _positive_float(value: str) -> float:
    parsed = float(value)
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return parsed


def _positive_int(value: str) -> int:
    parsed = int(value)
    if parsed <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return parsed


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile and transfer delegate collectibles")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    reconcile = subparsers.add_parser("reconcile", help="Promote pending records found on chain")
    mode = reconcile.add_mutually_exclusive_group()
    mode.add_argument("--once", action="store_true", help="Run a single pass (default)")
    mode.add_argument(
        "--interval",
        type=_positive_float,
        help="Keep running, sleeping this many seconds between passes",
    )

    catalog = subparsers.add_parser("catalog", help="Catalog inspection commands")
    catalog_sub = catalog.add_subparsers(dest="catalog_command", required=True)
    catalog_sub.add_parser("check", help="Load and validate the catalog file")
    catalog_sub.add_parser("stats", help="Per-project entry counts")

    register = subparsers.add_parser("register", help="Record an issued delegate")
    register.add_argument("--name", required=True, help="Catalog display name")
    register.add_argument("--reference", required=True, help="Original reference id")
    register.add_argument("--project", help="Project id (auto-detected when omitted)")
    register.add_argument("--owner", required=True, help="Owner address")
    register.add_argument("--order-ref", required=True, help="Issuance order reference")
    register.add_argument("--index", type=int, default=0, help="Position within the order")
    register.add_argument("--asset-ref", help="Final asset reference, if already known")

    transfer = subparsers.add_parser("transfer", help="Build an unsigned transfer proposal")
    transfer.add_argument("asset_ref", help="Asset to move")
    transfer.add_argument("--to", dest="destination", required=True, help="Destination address")
    transfer.add_argument("--fee-rate", type=_positive_float, required=True, help="sat/vB")

    listing = subparsers.add_parser("list", help="Authorize and store a marketplace listing")
    listing.add_argument("asset_ref", help="Asset to list")
    listing.add_argument("--buyer", required=True, help="Address receiving the asset")
    listing.add_argument("--seller", required=True, help="Address receiving the payment")
    listing.add_argument("--price", type=_positive_int, required=True, help="Price in sats")
    listing.add_argument("--fee-rate", type=_positive_float, required=True, help="sat/vB")

    delegates = subparsers.add_parser("delegates", help="Show delegates an address holds")
    delegates.add_argument("owner", help="Owner address")
    delegates.add_argument("--max-items", type=_positive_int, help="Stop after this many items")

    return parser.parse_args(list(argv))


def _run_catalog(args: argparse.Namespace) -> None:
    settings = get_catalog_settings()
    if args.catalog_command == "check":
        registry = load_catalog(settings)
        log.info(
            "Catalog %s OK for %s: %s entries, %s placeholders",
            settings.path,
            settings.environment,
            len(registry),
            len(registry.placeholders()),
        )
        return
    for stats in catalog_report(load_catalog(settings)):
        log.info(
            f"{stats.project_id} ({stats.display_name}): {stats.total} entries, "
            f"{stats.placeholders} placeholders, classes={stats.by_asset_class}, "
            f"rarity={stats.by_rarity}"
        )


def _run_register(args: argparse.Namespace) -> None:
    outcome = register_delegate(
        args.name,
        args.reference,
        args.project,
        owner_address=args.owner,
        order_ref=args.order_ref,
        index=args.index,
        asset_ref=args.asset_ref,
    )
    if not outcome.accepted:
        error = outcome.validation.error
        if error is not None:
            raise error
    if outcome.record is not None:
        log.info(
            "Recorded %s as %s (%s)",
            outcome.record.display_name,
            outcome.record.record_id,
            outcome.record.state,
        )


def _run_reconcile(args: argparse.Namespace) -> None:
    if args.interval is None:
        summary = reconcile_pending()
        for diagnostic in summary.diagnostics:
            log.warning(f"{diagnostic.owner or '-'} {diagnostic.subject}: {diagnostic.message}")
        return
    run_reconciliation_loop(threading.Event(), interval=args.interval)


def _run_command(args: argparse.Namespace) -> None:
    if args.command == "reconcile":
        _run_reconcile(args)
    elif args.command == "catalog":
        _run_catalog(args)
    elif args.command == "register":
        _run_register(args)
    elif args.command == "transfer":
        intent = build_transfer(args.asset_ref, args.destination, args.fee_rate)
        print(intent.proposal)  # noqa: T201
    elif args.command == "list":
        intent = list_for_marketplace(
            args.asset_ref, args.buyer, args.seller, args.price, args.fee_rate
        )
        print(intent.authorization)  # noqa: T201
    elif args.command == "delegates":
        for found in owner_delegates(args.owner, max_items=args.max_items):
            label = found.entry.display_name if found.entry else found.metadata.reference_id
            print(f"{found.asset_ref}\t{label}\t{found.metadata.source}")  # noqa: T201
    else:
        raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        _run_command(parsed_args)
    except (ValidationError, ValueError) as exc:
        log.error(f"Rejected: {exc}")  # noqa: TRY400
        if isinstance(exc, ValidationError) and exc.suggestion:
            log.error(f"Did you mean {exc.suggestion!r}?")  # noqa: TRY400
        sys.exit(2)
    except Exception:
        log.exception(f"Fatal error during {parsed_args.command}")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
