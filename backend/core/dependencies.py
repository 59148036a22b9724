from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from simulator.service import SimulatorService, get_simulator_service

from .database import get_database_manager


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding an AsyncSession from the DatabaseManager."""
    manager = get_database_manager()
    async with manager.session() as session:
        yield session


def get_simulator() -> SimulatorService:
    """FastAPI dependency returning the process-wide SimulatorService."""
    return get_simulator_service()
