"""
Score CLI Commands

Score operations: standings, reconcile
"""
from housecup.cli.base import Command
from housecup.services.score_service import house_standings, reconcile_scores


class ScoreCommand(Command):
    """Score command handler."""

    def execute(self, args) -> int:
        if args.scores_action == "standings":
            return self._standings(args)
        elif args.scores_action == "reconcile":
            return self._reconcile(args)
        else:
            print("Error: Unknown scores action")
            return 1

    def _standings(self, args) -> int:
        async def operation(session):
            for position, house in enumerate(await house_standings(session), start=1):
                print(f"{position}. {house['name']:<12} {house['score']:>6}")

        return self.run(operation)

    def _reconcile(self, args) -> int:
        repair = not (args.check or self.dry_run)
        print("=== Score Reconciliation ===")

        async def operation(session):
            drift = await reconcile_scores(session, repair=repair)
            if not drift:
                print("✓ Cached scores match the ledger")
                return 0

            for item in drift:
                print(f"  {item.entity} {item.entity_id}: cached {item.cached}, ledger {item.derived}")
            if repair:
                print(f"✓ Repaired {len(drift)} column(s)")
                return 0
            print(f"✗ {len(drift)} column(s) drifted")
            return 1

        return self.run(operation)
