"""
CLI Test Suite

Parser wiring plus end-to-end command runs against a temporary database.
"""
import json

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import housecup.cli.base as cli_base
import housecup.cli.db_commands as db_commands
from housecup.cli import create_parser, main
from housecup.cli.guest_commands import read_names
from housecup.database import build_engine


# =============================================================================
# CLI Parser Tests
# =============================================================================

class TestCLIParser:
    """Test CLI argument parsing."""

    def test_db_reset_parsing(self):
        args = create_parser().parse_args(["db", "reset", "--force", "--guests-only"])

        assert args.command == "db"
        assert args.db_action == "reset"
        assert args.force is True
        assert args.guests_only is True

    def test_guests_seed_parsing(self):
        args = create_parser().parse_args(["guests", "seed", "--file", "names.txt"])

        assert args.command == "guests"
        assert args.guests_action == "seed"
        assert args.file == "names.txt"

    def test_voting_tally_parsing(self):
        args = create_parser().parse_args(["voting", "tally", "--round", "2", "--format", "json"])

        assert args.voting_action == "tally"
        assert args.round_number == 2
        assert args.format == "json"

    def test_scores_reconcile_parsing(self):
        args = create_parser().parse_args(["--dry-run", "scores", "reconcile", "--check"])

        assert args.dry_run is True
        assert args.scores_action == "reconcile"
        assert args.check is True

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_seed_file_must_exist(self, tmp_path):
        assert main(["guests", "seed", "--file", str(tmp_path / "missing.txt")]) == 1


def test_read_names_skips_blanks_and_comments(tmp_path):
    path = tmp_path / "guests.txt"
    path.write_text("# roster\nAda\n\n  Brian  \n# late\nCleo\n", encoding="utf-8")

    assert read_names(path) == ["Ada", "Brian", "Cleo"]


# =============================================================================
# Command execution
# =============================================================================

@pytest.fixture
def cli_database(tmp_path, monkeypatch):
    """Point every CLI command at a throwaway SQLite file."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    monkeypatch.setattr(cli_base, "engine", engine)
    monkeypatch.setattr(cli_base, "AsyncSessionLocal", session_factory)
    monkeypatch.setattr(db_commands, "engine", engine)
    return tmp_path


def test_event_lifecycle_via_cli(cli_database, capsys):
    roster = cli_database / "guests.txt"
    roster.write_text("Ada\nBrian\nCleo\n", encoding="utf-8")

    assert main(["db", "init"]) == 0
    assert main(["guests", "seed", "--file", str(roster)]) == 0
    assert main(["guests", "seed", "--file", str(roster)]) == 0
    assert "Created 0 guest(s), 3 already present" in capsys.readouterr().out

    assert main(["guests", "list", "--format", "json"]) == 0
    listed = json.loads(capsys.readouterr().out)
    assert [g["name"] for g in listed] == ["Ada", "Brian", "Cleo"]
    assert not any(g["is_active"] for g in listed)

    assert main(["voting", "open"]) == 0
    assert main(["voting", "status", "--format", "json"]) == 0
    status = json.loads(capsys.readouterr().out.split("\n", 1)[1])
    assert status["is_open"] is True
    assert status["round_number"] == 1
    assert status["ballots_cast"] == 0
    assert main(["voting", "open"]) == 1
    assert "already open" in capsys.readouterr().out

    assert main(["voting", "close"]) == 0
    assert main(["voting", "tally"]) == 0
    assert "No winner" in capsys.readouterr().out

    assert main(["scores", "reconcile", "--check"]) == 0
    assert main(["scores", "standings"]) == 0


def test_reset_requires_force(cli_database):
    assert main(["db", "init"]) == 0
    assert main(["db", "reset"]) == 1
    assert main(["db", "reset", "--force"]) == 0


def test_dry_run_touches_nothing(cli_database, capsys):
    assert main(["--dry-run", "db", "init"]) == 0
    assert "[DRY RUN]" in capsys.readouterr().out
    assert not (cli_database / "cli.db").exists()


def test_serve_dry_run(capsys):
    assert main(["--dry-run", "serve", "--port", "9001"]) == 0
    assert "http://127.0.0.1:9001" in capsys.readouterr().out
