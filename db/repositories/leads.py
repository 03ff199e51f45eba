"""Lead repository."""
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import dml
from db.models import Lead


async def get_by_last_names(session: AsyncSession, last_names: Iterable[str]) -> list[Lead]:
    last_names = set(last_names)
    if not last_names:
        return []
    return await dml.query(session, select(Lead).where(Lead.last_name.in_(last_names)))
