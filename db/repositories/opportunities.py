"""Opportunity repository — name-keyed lookups used by reconciliation."""
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import dml
from db.models import Opportunity


async def get_by_names(session: AsyncSession, names: Iterable[str]) -> list[Opportunity]:
    """Return every Opportunity whose name is in names (exact, case-sensitive)."""
    names = set(names)
    if not names:
        return []
    return await dml.query(
        session,
        select(Opportunity)
        .where(Opportunity.name.in_(names))
        .order_by(Opportunity.created_at, Opportunity.id),
    )


async def get_by_account(session: AsyncSession, account_id: UUID) -> list[Opportunity]:
    """Return all opportunities linked to an account."""
    return await dml.query(
        session,
        select(Opportunity)
        .where(Opportunity.account_id == account_id)
        .order_by(Opportunity.name),
    )
