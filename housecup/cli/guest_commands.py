"""
Guest CLI Commands

Roster operations: seed, list
"""
import json
from pathlib import Path

from housecup.cli.base import Command
from housecup.database import seed_guests
from housecup.services.guest_service import list_guests


def read_names(path: Path) -> list:
    """One name per line; blank lines and '#' comments are skipped."""
    names = []
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            names.append(line)
    return names


class GuestCommand(Command):
    """Guest roster command handler."""

    def execute(self, args) -> int:
        if args.guests_action == "seed":
            return self._seed(args)
        elif args.guests_action == "list":
            return self._list(args)
        else:
            print("Error: Unknown guests action")
            return 1

    def _seed(self, args) -> int:
        path = Path(args.file)
        if not path.exists():
            print(f"Error: File not found: {path}")
            return 1

        names = read_names(path)
        print(f"=== Seeding {len(names)} guest(s) from {path} ===")

        if self.dry_run:
            for name in names:
                print(f"  - {name}")
            return 0

        async def operation(session):
            created = await seed_guests(session, names)
            print(f"✓ Created {len(created)} guest(s), {len(names) - len(created)} already present")

        return self.run(operation)

    def _list(self, args) -> int:
        async def operation(session):
            guests = await list_guests(session, active=True if args.active else None)
            if args.format == "json":
                print(json.dumps([guest.to_dict() for guest in guests], indent=2))
                return 0

            for guest in guests:
                state = f"house {guest.house_id}" if guest.is_active else "unregistered"
                print(f"{guest.id:>4}  {guest.name:<30} {state:<14} {guest.personal_score:>5} pts")
            print(f"{len(guests)} guest(s)")

        return self.run(operation)
