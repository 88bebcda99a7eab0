"""Database session dependencies."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.firmguard.core.db import get_session


async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """Business session for the request. Handlers commit explicitly."""
    async with get_session() as session:
        yield session


DBSession = Annotated[AsyncSession, Depends(get_db_session)]
