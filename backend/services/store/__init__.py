from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_session
from .base import CONTENT_MODELS, RESULT_MODELS, ContentRow, PersistenceFailure, ResultRow, ResultStore
from .memory import InMemoryResultStore
from .sql import SqlResultStore


async def get_result_store(db: AsyncSession = Depends(get_session)) -> ResultStore:
    return SqlResultStore(db)


__all__ = [
    "CONTENT_MODELS",
    "ContentRow",
    "InMemoryResultStore",
    "PersistenceFailure",
    "RESULT_MODELS",
    "ResultRow",
    "ResultStore",
    "SqlResultStore",
    "get_result_store",
]
