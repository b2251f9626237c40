"""
GymManager Member Sync Entry Point.

Bootstraps the dependency graph via constructor injection, initialises
the local SQLite schema, and runs one operator command against the
member cache, the sync engine or the revenue ledger.

Usage::

    python main.py sync
    python main.py resync
    python main.py list --filter Expired
    python main.py watch
    python main.py revenue total
    python main.py revenue add "Protein stock" 1200 --type Expense
    python main.py delete <member-id>
"""

from __future__ import annotations

import argparse
import atexit
import sys
import time
from datetime import date
from typing import Optional

from gym_manager.config import get_config
from gym_manager.database import DatabaseManager
from gym_manager.errors import GymManagerError
from gym_manager.logger import StructuredLogger, get_logger
from gym_manager.models.enums import MemberFilter, RevenueType
from gym_manager.models.member import Member
from gym_manager.models.service_models import Resource
from gym_manager.schema import initialize_schema
from gym_manager.services import ServiceContainer, create_services
from gym_manager.services.membership_status import days_remaining, filter_members
from gym_manager.services.revenue_ledger import RevenueLedgerService


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="GymManager offline-first member cache and sync",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("sync", help="Incrementally sync members into the cache")
    subparsers.add_parser("resync", help="Replace the cache with the full remote collection")

    list_parser = subparsers.add_parser("list", help="Print cached members")
    list_parser.add_argument(
        "--filter",
        choices=[f.value for f in MemberFilter],
        default=MemberFilter.ALL.value,
        help="Membership filter (default: All)",
    )

    subparsers.add_parser("watch", help="Run the background sync worker until interrupted")

    delete_parser = subparsers.add_parser("delete", help="Delete a member by id")
    delete_parser.add_argument("member_id")

    revenue_parser = subparsers.add_parser("revenue", help="Revenue ledger commands")
    revenue_sub = revenue_parser.add_subparsers(dest="revenue_command", required=True)
    revenue_sub.add_parser("total", help="Print the running total")
    revenue_sub.add_parser("entries", help="Print every ledger entry")
    add_parser = revenue_sub.add_parser("add", help="Record an income or expense")
    add_parser.add_argument("name")
    add_parser.add_argument("amount", type=int)
    add_parser.add_argument(
        "--type",
        dest="revenue_type",
        choices=[t.value for t in RevenueType],
        default=RevenueType.INCOME.value,
    )

    return parser.parse_args(argv)


def _print_result(result: Resource) -> None:
    if result.is_loading:
        print("... loading")
    elif result.is_error:
        print(f"ERROR [{result.error_kind}]: {result.error}")
    elif isinstance(result.data, list):
        print(f"{len(result.data)} member(s)")
    else:
        print(result.data.message if hasattr(result.data, "message") else result.data)


def _print_members(members: list[Member]) -> None:
    today = date.today()
    for member in members:
        remaining = days_remaining(member, today)
        left = "?" if remaining is None else str(remaining)
        print(
            f"{member.id}  {member.name or '-':<24} "
            f"ends {member.subscription_end or '-':<10}  days left {left}"
        )


def _print_ledger(ledger: RevenueLedgerService, what: str) -> None:
    if what == "total":
        print(ledger.get_total())
        return
    for entry in ledger.get_entries():
        print(f"{entry.amount or 0:>10}  {entry.name or '-'}")


def _run_command(args: argparse.Namespace, services: ServiceContainer) -> int:
    if args.command == "sync":
        results = services["sync_engine"].request_sync(on_result=_print_result)
        return 1 if results and results[-1].is_error else 0

    if args.command == "resync":
        final = None
        for final in services["sync_engine"].resync_members():
            _print_result(final)
        return 1 if final is not None and final.is_error else 0

    if args.command == "list":
        members = services["cache_manager"].get_all_members_snapshot()
        _print_members(filter_members(members, MemberFilter(args.filter)))
        return 0

    if args.command == "watch":
        worker = services["sync_worker"]
        worker.run_once()
        worker.start()
        try:
            # Ctrl-C ends the loop.
            while worker.is_running:
                time.sleep(1.0)
        finally:
            worker.stop()
        return 0

    if args.command == "delete":
        result = services["mutation_coordinator"].delete_member(args.member_id)
        _print_result(result)
        return 1 if result.is_error else 0

    ledger = services["revenue_ledger"]
    if args.revenue_command in ("total", "entries"):
        try:
            _print_ledger(ledger, args.revenue_command)
        except GymManagerError as exc:
            print(f"ERROR [{exc.kind}]: {exc.message}")
            return 1
        return 0

    result = ledger.add_revenue_entry(args.name, args.amount, RevenueType(args.revenue_type))
    _print_result(result)
    return 1 if result.is_error else 0


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point: wire dependencies and run one command."""
    args = parse_args(argv)
    logger: StructuredLogger = get_logger("main")

    # ------------------------------------------------------------------
    # 1. Configuration (from .env / environment variables)
    # ------------------------------------------------------------------
    config = get_config()

    # ------------------------------------------------------------------
    # 2. Database Manager (offline-first: Supabase optional, SQLite always)
    # ------------------------------------------------------------------
    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        sqlite_path=config.SQLITE_PATH,
        logger=get_logger("database"),
    )
    atexit.register(db.close)

    # ------------------------------------------------------------------
    # 3. SQLite schema (idempotent, versioned)
    # ------------------------------------------------------------------
    initialize_schema(db.sqlite, get_logger("schema"))

    # ------------------------------------------------------------------
    # 4. Service container (single composition root)
    # ------------------------------------------------------------------
    services = create_services(db=db, config=config, on_sync_result=_print_result)

    try:
        return _run_command(args, services)
    finally:
        db.close()
        logger.info("GymManager command '%s' finished.", args.command)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
