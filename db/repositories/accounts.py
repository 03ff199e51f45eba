"""Account repository — lookups by id and name, find-or-create by name."""
import logging
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db import dml
from db.models import Account

logger = logging.getLogger(__name__)


async def get_by_id(session: AsyncSession, account_id: UUID) -> Optional[Account]:
    """Return the Account with this id, or None."""
    return await session.get(Account, account_id)


async def get_by_name(session: AsyncSession, name: str) -> Optional[Account]:
    """Return one Account whose name matches exactly, or None."""
    result = await session.execute(
        select(Account)
        .where(Account.name == name)
        .order_by(Account.created_at, Account.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_by_names(session: AsyncSession, names: Iterable[str]) -> list[Account]:
    """Return every Account whose name is in names (exact, case-sensitive)."""
    names = set(names)
    if not names:
        return []
    return await dml.query(
        session,
        select(Account)
        .where(Account.name.in_(names))
        .order_by(Account.created_at, Account.id),
    )


async def lock_name(session: AsyncSession, name: str) -> None:
    """Serialize find-or-create for one name until the transaction ends.

    Takes a transaction-scoped advisory lock on PostgreSQL; a no-op elsewhere.
    """
    if session.get_bind().dialect.name != "postgresql":
        return
    await session.execute(select(func.pg_advisory_xact_lock(func.hashtext(name))))


async def find_or_create(session: AsyncSession, name: str) -> tuple[Account, bool]:
    """Return (account, created) for the Account with this exact name.

    Creates and flushes a new Account when none exists so its id can be used
    to link children straight away.
    """
    if not name or not name.strip():
        raise ValueError("Account name must not be blank")
    await lock_name(session, name)
    account = await get_by_name(session, name)
    if account is not None:
        return account, False
    account = Account(name=name)
    await dml.insert(session, [account])
    logger.info("Created account %r (%s)", name, account.id)
    return account, True
