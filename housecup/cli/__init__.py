#!/usr/bin/env python3
"""
House Cup operator CLI

Usage:
    python -m housecup.cli <command> [options]

Commands:
    db          Database operations (init, reset)
    guests      Roster operations (seed, list)
    voting      Voting session (open, close, status, tally)
    scores      Score operations (standings, reconcile)
    serve       Run the HTTP API under uvicorn

Environment:
    DATABASE_URL    SQLAlchemy async URL (default sqlite+aiosqlite:///./housecup.db)
    LOG_LEVEL       DEBUG|INFO|WARNING|ERROR
"""
import sys
import argparse
import logging
from typing import Optional

from housecup import __version__
from housecup.cli.db_commands import DbCommand
from housecup.cli.guest_commands import GuestCommand
from housecup.cli.score_commands import ScoreCommand
from housecup.cli.server_commands import ServeCommand
from housecup.cli.voting_commands import VotingCommand


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="housecup",
        description="House Cup event operator CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s db init
  %(prog)s guests seed --file guests.txt
  %(prog)s voting open
  %(prog)s voting tally --round 1
  %(prog)s scores reconcile --check
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be done without executing"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Database commands
    db_parser = subparsers.add_parser("db", help="Database operations")
    db_subparsers = db_parser.add_subparsers(dest="db_action")

    db_subparsers.add_parser("init", help="Create tables and seed houses")

    reset_parser = db_subparsers.add_parser("reset", help="Wipe all event data")
    reset_parser.add_argument("--force", action="store_true", help="Required to actually reset")
    reset_parser.add_argument(
        "--guests-only",
        action="store_true",
        help="Only remove guest awards and registrations"
    )

    # Guest commands
    guests_parser = subparsers.add_parser("guests", help="Roster operations")
    guests_subparsers = guests_parser.add_subparsers(dest="guests_action")

    seed_parser = guests_subparsers.add_parser("seed", help="Pre-populate guest placeholders")
    seed_parser.add_argument("--file", "-f", required=True, help="Text file, one guest name per line")

    list_parser = guests_subparsers.add_parser("list", help="List guests")
    list_parser.add_argument("--active", action="store_true", help="Only registered guests")
    list_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")

    # Voting commands
    voting_parser = subparsers.add_parser("voting", help="Voting session")
    voting_subparsers = voting_parser.add_subparsers(dest="voting_action")

    voting_subparsers.add_parser("open", help="Open a new voting round")
    voting_subparsers.add_parser("close", help="Close the current round")
    status_parser = voting_subparsers.add_parser("status", help="Show session state")
    status_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")

    tally_parser = voting_subparsers.add_parser("tally", help="Run the ranked-choice count")
    tally_parser.add_argument("--round", dest="round_number", type=int, help="Round to tally (default: latest)")
    tally_parser.add_argument("--format", choices=["text", "json"], default="text", help="Output format")

    # Score commands
    scores_parser = subparsers.add_parser("scores", help="Score operations")
    scores_subparsers = scores_parser.add_subparsers(dest="scores_action")

    scores_subparsers.add_parser("standings", help="Show house standings")

    reconcile_parser = scores_subparsers.add_parser("reconcile", help="Rebuild cached scores from the ledger")
    reconcile_parser.add_argument("--check", action="store_true", help="Report drift without repairing")

    # Server
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    parsed = parser.parse_args(args)

    if not parsed.command:
        parser.print_help()
        return 1

    setup_logging(parsed.log_level)

    command_map = {
        "db": DbCommand,
        "guests": GuestCommand,
        "voting": VotingCommand,
        "scores": ScoreCommand,
        "serve": ServeCommand,
    }

    if parsed.command in command_map:
        handler = command_map[parsed.command](dry_run=parsed.dry_run)
        return handler.execute(parsed)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
