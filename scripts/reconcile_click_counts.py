#!/usr/bin/env python
"""Recompute cached project click counters from the click log.

``projects.click_count`` is a cache of ``count(project_clicks)``; it can
drift when a click row is written but the counter update fails. Run this
periodically (cron) or after an incident.

Usage:
    python scripts/reconcile_click_counts.py                # all projects
    python scripts/reconcile_click_counts.py --user <uuid>  # one owner
"""

import argparse
import asyncio
import uuid

from devstack.database import get_session_maker
from devstack.logging import setup_logging
from devstack.services.analytics import reconcile_click_counts


async def run(user_id: uuid.UUID | None) -> int:
    async with get_session_maker()() as session:
        corrected = await reconcile_click_counts(session, user_id)
        await session.commit()
    return corrected


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--user", type=uuid.UUID, default=None, help="Only this owner's projects")
    args = parser.parse_args()

    setup_logging()
    corrected = asyncio.run(run(args.user))
    print(f"Corrected {corrected} project(s).")


if __name__ == "__main__":
    main()
