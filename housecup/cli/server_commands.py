"""
Server CLI Command

Runs the HTTP API under uvicorn.
"""
import uvicorn

from housecup.cli.base import Command
from housecup.config import settings


class ServeCommand(Command):
    """Start the API server."""

    def execute(self, args) -> int:
        target = f"http://{args.host}:{args.port}"
        if self.dry_run:
            print(f"[DRY RUN] Would serve housecup.main:app on {target}")
            return 0

        print(f"Serving House Cup API on {target} ({settings.ENVIRONMENT})")
        uvicorn.run(
            "housecup.main:app",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=settings.LOG_LEVEL.lower(),
        )
        return 0
