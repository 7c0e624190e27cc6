"""
Database CLI Commands

Database operations: init, reset
"""
from housecup.cli.base import Command
from housecup.database import create_schema, engine, seed_reference_data
from housecup.services.reset_service import clear_guest_awards, reset_event


class DbCommand(Command):
    """Database CLI command handler."""

    def execute(self, args) -> int:
        if args.db_action == "init":
            return self._init(args)
        elif args.db_action == "reset":
            return self._reset(args)
        else:
            print("Error: Unknown database action")
            return 1

    def _init(self, args) -> int:
        """Create tables and seed houses plus the voting row."""
        print("=== Database Init ===")
        print(f"Database: {engine.url.render_as_string(hide_password=True)}")

        if self.dry_run:
            print("[DRY RUN] Would create tables and seed houses")
            return 0

        async def operation(session):
            await create_schema(engine)
            await seed_reference_data(session)
            print("✓ Schema ready, houses seeded")

        return self.run(operation)

    def _reset(self, args) -> int:
        """Wipe event data (or only guest awards)."""
        scope = "guest awards and registrations" if args.guests_only else "ALL event data"
        print(f"=== Reset: {scope} ===")

        if self.dry_run:
            print(f"[DRY RUN] Would remove {scope}")
            return 0

        if not args.force:
            print("Error: reset is destructive, re-run with --force")
            return 1

        async def operation(session):
            if args.guests_only:
                removed = await clear_guest_awards(session)
                print(f"✓ Removed {removed} guest award(s)")
            else:
                removed = await reset_event(session)
                for table, count in removed.items():
                    print(f"  {table}: {count} row(s) removed")
                print("✓ Event reset")

        return self.run(operation)
