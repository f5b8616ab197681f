#!/usr/bin/env python
"""Seed development database with fixture data.

Seeds the current cycle with a handful of candidate albums (and their
submitters' votes) so the voting screen has something to show locally.

Constraints:
- Refuses to run in staging or prod (PLAYGROUP_ENV check)
- Goes through the service layer, so every ledger invariant holds
- Idempotent: albums already in the current cycle are skipped
- Never runs automatically (manual invocation only)

Usage:
    cd python && DATABASE_URL=... python ../scripts/seed_dev.py
"""

import os
import sys


def main():
    # 1. Environment check (hard fail in staging/prod)
    playgroup_env = os.getenv("PLAYGROUP_ENV", "local")
    if playgroup_env not in ("local", "test"):
        print(f"ERROR: seed_dev.py refuses to run in PLAYGROUP_ENV={playgroup_env}")
        sys.exit(1)

    # 2. Check DATABASE_URL
    if not os.getenv("DATABASE_URL"):
        print("ERROR: DATABASE_URL environment variable must be set")
        sys.exit(1)

    # 3. Import fixture data (single source of truth)
    from tests.fixtures import FIXTURE_ALBUMS, FIXTURE_SUBMITTER_FID, FIXTURE_SUBMITTER_USERNAME

    from playgroup.auth.identity import LegacyIdentity
    from playgroup.db.session import get_session_factory
    from playgroup.errors import ConflictError
    from playgroup.schemas.album import SubmitAlbumRequest
    from playgroup.services.cycles import get_or_create_current_cycle
    from playgroup.services.submissions import submit_album

    submitter = LegacyIdentity(FIXTURE_SUBMITTER_FID)
    created = 0
    skipped = 0

    with get_session_factory()() as db:
        cycle = get_or_create_current_cycle(db)
        print(f"Current cycle: {cycle.year} week {cycle.week_number} ({cycle.phase})")

        if cycle.phase != "voting":
            print("Cycle is in listening phase; nothing to seed.")
            return

        # 4. Idempotent seeding
        for album in FIXTURE_ALBUMS:
            try:
                submit_album(
                    db,
                    cycle.id,
                    submitter,
                    SubmitAlbumRequest(username=FIXTURE_SUBMITTER_USERNAME, **album),
                )
                created += 1
            except ConflictError as e:
                print(f"  - {album['title']}: {e.message}")
                skipped += 1

    # 5. Report
    print(f"✓ Seeded {created} album(s), skipped {skipped}")


if __name__ == "__main__":
    main()
