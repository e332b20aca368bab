"""
Tombstone file records whose signed upload never completed once
their token can no longer be redeemed.
Run from backend/: python scripts/reap_orphans.py [--dry-run] [--grace-seconds N]
"""
import argparse
import asyncio
import os
import sys
from datetime import timedelta

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from filebucket.core.config import get_settings
from filebucket.db import async_session_factory, engine
from filebucket.db.models import utcnow
from filebucket.services.deletion import DeletionCoordinator
from filebucket.services.storage import get_storage


async def main(dry_run: bool, grace_seconds: int) -> None:
    cutoff = utcnow() - timedelta(seconds=get_settings().token_ttl_seconds + grace_seconds)
    coordinator = DeletionCoordinator(get_storage())
    async with async_session_factory() as db:
        orphans = await coordinator.reap_orphans(db, cutoff, dry_run=dry_run)
        for file_id in orphans:
            print(f"{'Would tombstone' if dry_run else 'Tombstoned'}: {file_id}")
        if not dry_run:
            await db.commit()
        print(f"{len(orphans)} orphaned record(s) registered before {cutoff.isoformat()}.")
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--dry-run", action="store_true", help="List orphans without changing anything")
    parser.add_argument("--grace-seconds", type=int, default=300, help="Extra age beyond the token TTL")
    args = parser.parse_args()
    asyncio.run(main(args.dry_run, args.grace_seconds))
