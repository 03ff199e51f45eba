"""Single-purpose record operations.

Each function builds one or more records, optionally looks one up, and issues
a single insert/update/upsert/delete call (insert-then-delete for the two
round-trip helpers). The session passed in is the unit of work; nothing here
commits.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from db import dml
from db.dml import RecordNotFoundError
from db.models import Account, Case, Contact, Lead, Opportunity
from db.repositories import accounts as accounts_repo

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_NAME = "Acme Corporation"
DEFAULT_ACCOUNT_INDUSTRY = "Technology"
DEFAULT_CONTACT_FIRST_NAME = "John"
DEFAULT_CONTACT_LAST_NAME = "Doe"
DEFAULT_LEAD_COMPANY = "Unknown"
DEFAULT_CASE_SUBJECT = "Support request"

NEW_OPPORTUNITY_AMOUNT = Decimal("50000")


async def insert_new_account(session: AsyncSession) -> UUID:
    """Insert a fixed Technology account and return its id."""
    account = Account(name=DEFAULT_ACCOUNT_NAME, industry=DEFAULT_ACCOUNT_INDUSTRY)
    await dml.insert(session, [account])
    return account.id


async def create_account(session: AsyncSession, name: str, industry: str) -> Account:
    """Insert an account with the given name and industry."""
    account = Account(name=name, industry=industry)
    await dml.insert(session, [account])
    return account


async def insert_new_contact(session: AsyncSession, account_id: UUID) -> UUID:
    """Insert a placeholder contact under account_id and return its id."""
    contact = Contact(
        first_name=DEFAULT_CONTACT_FIRST_NAME,
        last_name=DEFAULT_CONTACT_LAST_NAME,
        account_id=account_id,
    )
    await dml.insert(session, [contact])
    return contact.id


async def update_account_name(
    session: AsyncSession, account_id: UUID, new_name: str
) -> Account:
    """Rename an existing account."""
    account = await accounts_repo.get_by_id(session, account_id)
    if account is None:
        raise RecordNotFoundError(Account, account_id)
    account.name = new_name
    await dml.update(session, [account])
    return account


async def update_opportunity_stage(
    session: AsyncSession,
    opportunities: Iterable[Opportunity],
    stage_name: str = "Qualification",
) -> list[Opportunity]:
    """Move every given opportunity to stage_name in one update call."""
    opportunities = list(opportunities)
    for opp in opportunities:
        opp.stage_name = stage_name
    return await dml.update(session, opportunities)


async def update_account_details(
    session: AsyncSession,
    accounts: Iterable[Account],
    industry: str = "Technology",
    account_type: str = "Customer",
) -> list[Account]:
    """Set industry and type on the given accounts in one update call."""
    accounts = list(accounts)
    for account in accounts:
        account.industry = industry
        account.type = account_type
    return await dml.update(session, accounts)


async def create_opportunities(
    session: AsyncSession, account_id: UUID, opp_names: Iterable[str]
) -> list[Opportunity]:
    """Create one Prospecting opportunity per name under account_id.

    Each closes three months from today with an amount of 50,000.
    """
    close_date = datetime.now(timezone.utc).date() + relativedelta(months=3)
    opportunities = [
        Opportunity(
            name=name,
            stage_name="Prospecting",
            close_date=close_date,
            amount=NEW_OPPORTUNITY_AMOUNT,
            account_id=account_id,
        )
        for name in opp_names
    ]
    return await dml.upsert(session, opportunities)


async def delete_contacts_by_id(session: AsyncSession, contact_ids: Iterable[UUID]) -> int:
    return await dml.delete_by_ids(session, Contact, contact_ids)


async def upsert_account(session: AsyncSession, account_name: str) -> Account:
    """Find-or-create an account by exact name and stamp its description.

    An existing account gets "Updated Account", a new one "New Account".
    """
    if not account_name or not account_name.strip():
        raise ValueError("Account name must not be blank")
    await accounts_repo.lock_name(session, account_name)
    account = await accounts_repo.get_by_name(session, account_name)
    if account is None:
        account = Account(name=account_name, description="New Account")
    else:
        account.description = "Updated Account"
    upserted = await dml.upsert(session, [account])
    return upserted[0]


async def insert_and_delete_leads(session: AsyncSession, lead_names: Iterable[str]) -> int:
    """Insert one lead per last name, then delete them all.

    Returns the number of leads that passed through the store.
    """
    leads = [Lead(last_name=name, company=DEFAULT_LEAD_COMPANY) for name in lead_names]
    await dml.insert(session, leads)
    return await dml.delete(session, leads)


async def create_and_delete_cases(
    session: AsyncSession, account_id: UUID, num_of_cases: int
) -> int:
    """Raise num_of_cases cases against account_id, then delete them."""
    if num_of_cases <= 0:
        return 0
    cases = [
        Case(account_id=account_id, subject=f"{DEFAULT_CASE_SUBJECT} #{i + 1}")
        for i in range(num_of_cases)
    ]
    await dml.insert(session, cases)
    deleted = await dml.delete(session, cases)
    logger.info("Created and deleted %d case(s) for account %s", deleted, account_id)
    return deleted
