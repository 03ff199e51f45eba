"""Case repository."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import dml
from db.models import Case


async def get_by_account(session: AsyncSession, account_id: UUID) -> list[Case]:
    """Return all cases raised against an account."""
    return await dml.query(session, select(Case).where(Case.account_id == account_id))
