"""Contact repository."""
from typing import Iterable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db import dml
from db.models import Contact


async def get_by_ids(session: AsyncSession, contact_ids: Iterable[UUID]) -> list[Contact]:
    """Return the Contacts with these ids (unknown ids are skipped)."""
    contact_ids = set(contact_ids)
    if not contact_ids:
        return []
    return await dml.query(session, select(Contact).where(Contact.id.in_(contact_ids)))


async def get_by_account(session: AsyncSession, account_id: UUID) -> list[Contact]:
    """Return all contacts linked to an account."""
    return await dml.query(
        session,
        select(Contact).where(Contact.account_id == account_id).order_by(Contact.last_name),
    )
