"""
Name-keyed upsert reconciliation.

Synchronizes a set of child records, identified by a name string, against a
parent account:

- existing children whose name is desired -> RELINK (parent id reassigned)
- desired names with no existing child    -> CREATE (one new child per name)

Matching is exact, case-sensitive name equality. The stored parent link plays
no part in matching. Desired names are deduplicated, so a name listed twice
yields at most one new child.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Generic, Iterable, Optional, TypeVar

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from db import dml
from db.models import Account, Contact, Opportunity
from db.repositories import accounts as accounts_repo
from db.repositories import opportunities as opportunities_repo

logger = logging.getLogger(__name__)

T = TypeVar("T")

NEW_OPPORTUNITY_STAGE = "Prospecting"
NEW_OPPORTUNITY_CLOSE_DAYS = 30


@dataclass
class ReconciliationResult(Generic[T]):
    """Result of reconciling existing records against desired names."""
    relink: list[T] = field(default_factory=list)
    create_names: list[str] = field(default_factory=list)
    by_name: dict[str, T] = field(default_factory=dict)

    @property
    def summary(self) -> dict[str, int]:
        return {"relink": len(self.relink), "create": len(self.create_names)}


def _name_of(record) -> str:
    return record.name


def reconcile_by_name(
    existing: Iterable[T],
    desired_names: Iterable[str],
    key: Callable[[T], str] = _name_of,
) -> ReconciliationResult[T]:
    """Partition desired names into records to relink and names to create.

    Args:
        existing: Stored records, normally fetched by the desired names.
        desired_names: Names that must each end up with a record. May repeat.
        key: Returns the matching name of a record.

    Returns:
        ReconciliationResult where relink holds every existing record whose
        name is desired (several records may share one name), create_names
        holds the uncovered names in first-seen order without repeats, and
        by_name maps each covered name to its first existing record.
    """
    desired = list(dict.fromkeys(desired_names))
    wanted = set(desired)

    result: ReconciliationResult[T] = ReconciliationResult()
    for record in existing:
        name = key(record)
        if name not in wanted:
            continue
        result.relink.append(record)
        result.by_name.setdefault(name, record)

    result.create_names = [name for name in desired if name not in result.by_name]
    return result


async def upsert_opportunities_for_account(
    session: AsyncSession,
    account_name: str,
    opp_names: Iterable[str],
    amount: Optional[Decimal] = None,
) -> Account:
    """Ensure one opportunity per name exists and is linked to the named account.

    The account is found by exact name or created. Existing opportunities
    with a desired name are relinked in one update call; missing names are
    created in one insert call at stage Prospecting, closing 30 days out.
    Returns the account.
    """
    account, _ = await accounts_repo.find_or_create(session, account_name)

    desired = list(opp_names)
    if not desired:
        return account

    existing = await opportunities_repo.get_by_names(session, desired)
    plan = reconcile_by_name(existing, desired)

    if plan.relink:
        for opp in plan.relink:
            opp.account_id = account.id
        await dml.update(session, plan.relink)

    if plan.create_names:
        today = datetime.now(timezone.utc).date()
        close_date = today + relativedelta(days=NEW_OPPORTUNITY_CLOSE_DAYS)
        await dml.insert(session, [
            Opportunity(
                name=name,
                stage_name=NEW_OPPORTUNITY_STAGE,
                close_date=close_date,
                amount=amount if amount is not None else Decimal("0"),
                account_id=account.id,
            )
            for name in plan.create_names
        ])

    logger.info(
        "Reconciled opportunities for account %r: %s", account_name, plan.summary
    )
    return account


async def upsert_opportunities(
    session: AsyncSession,
    account_name: str,
    opp_names: Iterable[str],
) -> None:
    """Upsert opportunities by name under the named account (find-or-create)."""
    await upsert_opportunities_for_account(session, account_name, opp_names)


async def upsert_accounts_with_contacts(
    session: AsyncSession, contacts: Iterable[Contact]
) -> list[Account]:
    """Link each contact to the account named after its last name.

    Accounts are matched by exact name; missing ones are created in one
    insert call. Contacts are then upserted in one call, linked to their
    account. Returns one account per distinct last name, in
    first-seen order.
    """
    contacts = list(contacts)
    if not contacts:
        return []
    for contact in contacts:
        if not contact.last_name:
            raise ValueError(f"{contact!r} has no last name to match an account on")

    names = [contact.last_name for contact in contacts]
    for name in sorted(set(names)):
        await accounts_repo.lock_name(session, name)

    existing = await accounts_repo.get_by_names(session, names)
    plan = reconcile_by_name(existing, names)

    created = await dml.insert(session, [Account(name=name) for name in plan.create_names])
    by_name = {**plan.by_name, **{account.name: account for account in created}}

    # Set the relationship as well as the key: a pending account on the
    # contact would otherwise overwrite account_id at flush.
    for contact in contacts:
        account = by_name[contact.last_name]
        contact.account = account
        contact.account_id = account.id
    await dml.upsert(session, contacts)

    logger.info(
        "Linked %d contact(s) to %d account(s), %d new",
        len(contacts), len(by_name), len(created),
    )
    return [by_name[name] for name in dict.fromkeys(names)]
