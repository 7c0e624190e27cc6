"""
Voting CLI Commands

Session operations: open, close, status, tally
"""
import json

from housecup.cli.base import Command
from housecup.services.ballot_service import voting_stats
from housecup.services.tally_engine import tally
from housecup.state_machines.voting_session import VotingSession


class VotingCommand(Command):
    """Voting session command handler."""

    def execute(self, args) -> int:
        actions = {
            "open": self._open,
            "close": self._close,
            "status": self._status,
            "tally": self._tally,
        }
        action = actions.get(args.voting_action)
        if action is None:
            print("Error: Unknown voting action")
            return 1
        return action(args)

    def _open(self, args) -> int:
        if self.dry_run:
            print("[DRY RUN] Would open a new voting round")
            return 0

        async def operation(session):
            snapshot = await VotingSession(session).open()
            print(f"✓ Voting open (round {snapshot.round_number})")

        return self.run(operation)

    def _close(self, args) -> int:
        if self.dry_run:
            print("[DRY RUN] Would close the current voting round")
            return 0

        async def operation(session):
            snapshot = await VotingSession(session).close()
            print(f"✓ Voting closed (round {snapshot.round_number})")

        return self.run(operation)

    def _status(self, args) -> int:
        async def operation(session):
            voting = VotingSession(session)
            stats = await voting_stats(session, voting)
            if args.format == "json":
                payload = (await voting.status()).to_dict()
                payload.update(ballots_cast=stats["ballots_cast"], active_guests=stats["active_guests"])
                print(json.dumps(payload, indent=2))
                return 0

            state = "OPEN" if stats["is_open"] else "CLOSED"
            print(f"Voting: {state}")
            print(f"Round: {stats['round_number']}")
            print(f"Ballots: {stats['ballots_cast']} / {stats['active_guests']} registered guests")

        return self.run(operation)

    def _tally(self, args) -> int:
        async def operation(session):
            result = await tally(session, VotingSession(session), round_number=args.round_number)

            if args.format == "json":
                print(json.dumps(result.to_dict(), indent=2))
                return 0

            print(f"=== Tally: voting round {result.voting_round}, {result.ballot_count} ballot(s) ===")
            for count in result.rounds:
                standing = ", ".join(f"{gid}:{votes}" for gid, votes in count.counts)
                line = f"Round {count.round_number}: {standing} (exhausted {count.exhausted})"
                if count.eliminated:
                    line += f" -> eliminated {', '.join(str(e) for e in count.eliminated)}"
                print(line)

            if result.no_winner:
                print("No winner")
            else:
                print(f"Winner: guest {result.winner_id}")

        return self.run(operation)
