"""
Database Connection and Session Management.

This module sets up the asynchronous SQLAlchemy engine and session factory
shared by the run stores and the shop tools.
"""

from shopfloor_ai.agent_core.repos.sql import create_all, create_engine, create_sessionmaker
from shopfloor_ai.server.core.config import settings

"""
engine:
    The global SQLAlchemy AsyncEngine instance.
    Configured with the connection URL from settings; Postgres URLs are
    normalized to the asyncpg driver.
"""
engine = create_engine(settings.database_url)

"""
async_session_maker:
    A global factory for creating new AsyncSession instances.
    Bound to the `engine` and configured to NOT expire on commit (typical for async).
"""
async_session_maker = create_sessionmaker(engine)


async def init_db() -> None:
    """
    Initialize the database.

    Creates the run, event and shop tables if they don't exist yet.
    """
    await create_all(engine)
