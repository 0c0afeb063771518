from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from .config import settings

engine: AsyncEngine = create_async_engine(settings.CASAMATCH_DB_URL, echo=False, future=True)

# Canonical async session factory
AsyncSessionLocal = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

# Scheduler jobs, adapters and the settings store take a session factory, not a session
async_session_maker = AsyncSessionLocal
