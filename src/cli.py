"""Operator command surface for the blacklist and the manual review queue.

Usage:
    python -m src.cli blacklist add user@example.com "chargeback fraud" --expiration 30
    python -m src.cli blacklist remove 203.0.113.7
    python -m src.cli blacklist list
    python -m src.cli blacklist history --limit 20
    python -m src.cli blacklist cleanup
    python -m src.cli review list --limit 10
    python -m src.cli review decide 2 reject --notes "stolen card"
    python -m src.cli review history
    python -m src.cli review cleanup --days 30
    python -m src.cli history clear user@example.com
    python -m src.cli report --hours 168
"""

import argparse
import asyncio
import getpass
import sys
from datetime import datetime

import redis.asyncio as aioredis
import structlog

from src.config import settings
from src.domains.risk.blacklist import BlacklistStore
from src.domains.risk.config import RiskConfig
from src.domains.risk.errors import ReviewConflictError, StoreUnavailableError
from src.domains.risk.history import TransactionHistoryStore
from src.domains.risk.models import IdentifierType, ReviewDecision, ReviewQueueEntry
from src.domains.risk.report import RiskReport, build_report
from src.domains.risk.review_queue import ReviewQueue
from src.domains.risk.storage import create_redis_client
from src.shared.logging import setup_logging

logger = structlog.get_logger()


def _default_operator() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


def _fmt(moment: datetime | None) -> str:
    return moment.isoformat(timespec="seconds") if moment else "-"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tour risk gate operator commands")
    groups = parser.add_subparsers(dest="group", required=True)

    blacklist = groups.add_parser("blacklist", help="Manage blacklisted emails and IPs")
    bl = blacklist.add_subparsers(dest="command", required=True)

    bl_add = bl.add_parser("add", help="Add an identifier to the blacklist")
    bl_add.add_argument("identifier", help="Email or IP to blacklist")
    bl_add.add_argument("reason", help="Reason for blacklisting")
    bl_add.add_argument("-e", "--expiration", type=float, default=None, help="Days until expiry")
    bl_add.add_argument("-b", "--added-by", default=_default_operator())
    bl_add.add_argument("--type", choices=[t.value for t in IdentifierType], default=None)

    bl_remove = bl.add_parser("remove", help="Remove an identifier from the blacklist")
    bl_remove.add_argument("identifier", help="Email or IP to remove")
    bl_remove.add_argument("-b", "--removed-by", default=_default_operator())
    bl_remove.add_argument("--type", choices=[t.value for t in IdentifierType], default=None)

    bl.add_parser("list", help="List live blacklist entries")

    bl_history = bl.add_parser("history", help="Show blacklist audit log")
    bl_history.add_argument("-l", "--limit", type=int, default=50)

    bl.add_parser("cleanup", help="Remove expired entries")

    review = groups.add_parser("review", help="Work the manual review queue")
    rv = review.add_subparsers(dest="command", required=True)

    rv_list = rv.add_parser("list", help="List pending reviews")
    rv_list.add_argument("-l", "--limit", type=int, default=10)

    rv_decide = rv.add_parser("decide", help="Approve or reject a pending entry")
    rv_decide.add_argument("target", help="Entry id, or 1-based position from 'review list'")
    rv_decide.add_argument("decision", choices=[d.value for d in ReviewDecision])
    rv_decide.add_argument("-n", "--notes", default=None)
    rv_decide.add_argument("-b", "--reviewed-by", default=_default_operator())

    rv_history = rv.add_parser("history", help="Show review decisions")
    rv_history.add_argument("-l", "--limit", type=int, default=50)

    rv_cleanup = rv.add_parser("cleanup", help="Purge old pending entries and decisions")
    rv_cleanup.add_argument(
        "-d", "--days", type=float, default=RiskConfig.from_env().retention.review_cleanup_days
    )

    history = groups.add_parser("history", help="Per-identity transaction history")
    hs = history.add_subparsers(dest="command", required=True)
    hs_clear = hs.add_parser("clear", help="Drop history and failure counts for an email")
    hs_clear.add_argument("email")

    report = groups.add_parser("report", help="Summarise review and blacklist activity")
    report.add_argument("--hours", type=float, default=24, help="Reporting window")
    report.add_argument("--json", action="store_true", help="Print the report as JSON")

    return parser


def _print_review_entry(position: int, entry: ReviewQueueEntry) -> None:
    attempt = entry.attempt
    print(f"\n#{position}  {entry.entry_id}")
    print(f"  Booking ID: {attempt.booking_id or '-'}")
    print(f"  Email:      {attempt.email}")
    print(f"  IP:         {attempt.ip_address or '-'}")
    print(f"  Amount:     ¥{attempt.amount:,.0f}")
    print(f"  Tour:       {attempt.tour_id}")
    print(f"  Risk Score: {entry.risk_score.score} ({entry.risk_score.level.value})")
    for factor in entry.risk_score.factors.triggered():
        print(f"    - {factor}")
    print(f"  Queued At:  {_fmt(entry.queued_at)}")


def _print_report(report: RiskReport) -> None:
    print(f"\nRisk Report ({report.period_hours:g}h to {_fmt(report.generated_at)})")
    print("=" * 50)
    print("\nReview Queue:")
    print(f"  Pending:        {report.pending_reviews}")
    if report.oldest_pending_age_hours is not None:
        print(f"  Oldest Pending: {report.oldest_pending_age_hours:g}h")
    print(f"  Decisions:      {report.decisions}")
    print(f"  Approved:       {report.approvals}")
    print(f"  Rejected:       {report.rejections}")
    if report.decided_factors:
        print("  Factors Seen:")
        for factor, count in report.decided_factors.items():
            print(f"    - {factor}: {count}")
    print("\nBlacklist:")
    print(f"  Live Entries:   {report.live_blacklist_entries}")
    print(f"  Expiring:       {report.expiring_blacklist_entries}")
    print(f"  Added:          {report.blacklist_adds}")
    print(f"  Removed:        {report.blacklist_removes}")
    if not report.needs_attention:
        print("\nNo pending reviews or rejections in this period")


async def _blacklist_command(args: argparse.Namespace, store: BlacklistStore) -> int:
    identifier_type = IdentifierType(args.type) if getattr(args, "type", None) else None

    if args.command == "add":
        entry = await store.ban(
            args.identifier,
            args.reason,
            args.added_by,
            expiration_days=args.expiration,
            identifier_type=identifier_type,
        )
        print(f"Added {entry.identifier} ({entry.identifier_type.value}) to blacklist")
        return 0

    if args.command == "remove":
        removed = await store.remove(args.identifier, identifier_type, args.removed_by)
        if not removed:
            print(f"{args.identifier} not found in blacklist")
            return 1
        print(f"Removed {args.identifier} from blacklist")
        return 0

    if args.command == "list":
        entries = await store.list_entries()
        if not entries:
            print("No entries in blacklist")
            return 0
        print("\nCurrent Blacklist Entries:")
        for entry in entries:
            print(f"\n{entry.identifier} ({entry.identifier_type.value})")
            print(f"  Reason:     {entry.reason}")
            print(f"  Added By:   {entry.added_by}")
            print(f"  Added At:   {_fmt(entry.added_at)}")
            if entry.expires_at:
                print(f"  Expires At: {_fmt(entry.expires_at)}")
        return 0

    if args.command == "history":
        events = await store.history(args.limit)
        if not events:
            print("No history found")
            return 0
        print("\nBlacklist History:")
        for event in events:
            print(f"\n{event.action.value.upper()}  {_fmt(event.timestamp)}")
            print(f"  Identifier: {event.identifier} ({event.identifier_type.value})")
            print(f"  By:         {event.actor}")
            if event.entry is not None:
                print(f"  Reason:     {event.entry.reason}")
                if event.entry.expires_at:
                    print(f"  Expires At: {_fmt(event.entry.expires_at)}")
        return 0

    removed = await store.cleanup()
    print(f"Cleaned up {removed} expired entries")
    return 0


async def _review_command(args: argparse.Namespace, queue: ReviewQueue) -> int:
    if args.command == "list":
        entries = await queue.list_pending(args.limit)
        if not entries:
            print("No entries in review queue")
            return 0
        print("\nPending Reviews:")
        for position, entry in enumerate(entries, start=1):
            _print_review_entry(position, entry)
        return 0

    if args.command == "decide":
        target = args.target.lstrip("#")
        entry_id = await queue.resolve_position(int(target)) if target.isdigit() else target
        decided = await queue.decide(entry_id, args.decision, args.notes, args.reviewed_by)
        print(
            f"Entry {decided.entry_id} marked {decided.decision.value} by {decided.reviewed_by}"
        )
        return 0

    if args.command == "history":
        decisions = await queue.history(args.limit)
        if not decisions:
            print("No review history found")
            return 0
        print("\nReview History:")
        for entry in decisions:
            print(f"\n{entry.entry_id}  {entry.decision.value.upper() if entry.decision else '-'}")
            print(f"  Booking ID:  {entry.attempt.booking_id or '-'}")
            print(f"  Reviewed By: {entry.reviewed_by}")
            print(f"  Reviewed At: {_fmt(entry.reviewed_at)}")
            if entry.notes:
                print(f"  Notes:       {entry.notes}")
        return 0

    result = await queue.cleanup(args.days)
    print(
        f"Cleaned up {result.pending_removed} pending entries "
        f"and {result.decisions_removed} decisions"
    )
    return 0


async def run_command(args: argparse.Namespace, redis: aioredis.Redis) -> int:
    """Dispatch a parsed command against the given store client."""
    blacklist = BlacklistStore(redis)
    try:
        if args.group == "blacklist":
            return await _blacklist_command(args, blacklist)
        if args.group == "review":
            return await _review_command(args, ReviewQueue(redis, blacklist))
        if args.group == "report":
            report = await build_report(blacklist, ReviewQueue(redis, blacklist), args.hours)
            if args.json:
                print(report.model_dump_json(indent=2))
            else:
                _print_report(report)
            return 0
        removed = await TransactionHistoryStore(redis, RiskConfig.from_env()).clear(args.email)
        print(f"Cleared {removed} history keys for {args.email}")
        return 0
    except ReviewConflictError as exc:
        print(f"Conflict: {exc}", file=sys.stderr)
        return 2
    except StoreUnavailableError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 3


async def _main(args: argparse.Namespace) -> int:
    redis = create_redis_client()
    try:
        return await run_command(args, redis)
    finally:
        await redis.aclose()


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(settings.log_level, json_output=False)
    sys.exit(asyncio.run(_main(args)))


if __name__ == "__main__":
    main()
