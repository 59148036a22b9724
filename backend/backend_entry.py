"""
Server entrypoint: optional demo seed, then uvicorn with the FastAPI app.

Run from the backend dir:
  python backend_entry.py                 -> serve on HOST:PORT (default 127.0.0.1:3001)
  python backend_entry.py --seed-demo     -> insert the demo event first, then serve
  python backend_entry.py --seed-only     -> insert the demo event and exit
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

_backend_dir = Path(__file__).resolve().parent
if str(_backend_dir) not in sys.path:
    sys.path.insert(0, str(_backend_dir))


def _seed_demo() -> dict:
    from core.config import get_settings
    from core.database import dispose_database, init_database
    from seed.seed_demo_event import seed_demo_event

    async def _run() -> dict:
        manager = await init_database(get_settings().database_url)
        try:
            async with manager.session() as session:
                return await seed_demo_event(session)
        finally:
            await dispose_database()

    return asyncio.run(_run())


def main() -> int:
    parser = argparse.ArgumentParser(description="Timing replay simulator server")
    parser.add_argument("--host", help="Bind address (default: HOST or 127.0.0.1)")
    parser.add_argument("--port", type=int, help="Port (default: PORT or 3001)")
    parser.add_argument("--seed-demo", action="store_true", help="Insert the demo event before serving")
    parser.add_argument("--seed-only", action="store_true", help="Insert the demo event and exit")
    args = parser.parse_args()

    from core.config import get_settings
    from core.logging import setup_logging

    settings = get_settings()
    setup_logging(settings)
    logger = logging.getLogger(__name__)

    if args.seed_demo or args.seed_only:
        counts = _seed_demo()
        logger.info("Demo event seeded: %s", counts)
        if args.seed_only:
            return 0

    host = args.host or settings.host
    port = args.port or settings.port
    logger.info("Backend entry: host=%s port=%s database=%s", host, port, settings.database_url)
    import uvicorn
    from main import app

    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
