"""
Shared plumbing for CLI command handlers.
"""
import asyncio
import logging

from housecup.database import AsyncSessionLocal, engine
from housecup.exceptions import HouseCupError

logger = logging.getLogger(__name__)


class Command:
    """Base handler: subclasses implement execute(args) -> int."""

    def __init__(self, dry_run: bool = False):
        self.dry_run = dry_run

    def execute(self, args) -> int:
        raise NotImplementedError

    def run(self, operation) -> int:
        """
        Run `operation(session)` on a fresh session inside its own event loop.

        Domain errors are printed and mapped to exit code 1.
        """
        async def runner():
            try:
                async with AsyncSessionLocal() as session:
                    return await operation(session)
            finally:
                await engine.dispose()

        try:
            result = asyncio.run(runner())
        except HouseCupError as e:
            print(f"Error: {e.message}")
            return 1
        return 0 if result is None else result
