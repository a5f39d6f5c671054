"""
Stock Inventory API Dependencies

Dependency injection for DB sessions and the inventory store.
"""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from db.session import AsyncSessionLocal
from inventory.store import SqlInventoryStore


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def get_store(db: AsyncSession = Depends(get_db)) -> SqlInventoryStore:
    """Inventory store bound to the request's session."""
    return SqlInventoryStore(db)
