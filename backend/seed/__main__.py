"""CLI entry: seed the demo event. Usage: python -m seed (from backend dir)."""
from __future__ import annotations

import asyncio
import sys

from core.config import get_settings
from core.database import dispose_database, init_database
from seed.seed_demo_event import seed_demo_event


async def _main() -> int:
    settings = get_settings()
    manager = await init_database(settings.database_url)
    try:
        async with manager.session() as session:
            counts = await seed_demo_event(session)
    finally:
        await dispose_database()
    print("Seed complete:", counts)
    return 0


def main() -> None:
    exit_code = asyncio.run(_main())
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
