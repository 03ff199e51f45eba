"""Tests for the single-purpose record operations."""
import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from dateutil.relativedelta import relativedelta
from sqlalchemy import select

from db import dml
from db.dml import RecordNotFoundError
from db.models import Account, Case, Contact, Lead, Opportunity
from db.repositories import accounts as accounts_repo
from db.repositories import cases as cases_repo
from db.repositories import contacts as contacts_repo
from db.repositories import leads as leads_repo
from db.repositories import opportunities as opportunities_repo
from operations import records


@pytest.mark.asyncio
async def test_insert_new_account(session):
    account_id = await records.insert_new_account(session)

    account = await accounts_repo.get_by_id(session, account_id)
    assert account.name == "Acme Corporation"
    assert account.industry == "Technology"


@pytest.mark.asyncio
async def test_create_account(session):
    account = await records.create_account(session, "Globex", "Energy")

    stored = await accounts_repo.get_by_id(session, account.id)
    assert (stored.name, stored.industry) == ("Globex", "Energy")


@pytest.mark.asyncio
async def test_insert_new_contact_links_account(session):
    account = await records.create_account(session, "Globex", "Energy")

    contact_id = await records.insert_new_contact(session, account.id)

    contact = (await contacts_repo.get_by_ids(session, [contact_id]))[0]
    assert (contact.first_name, contact.last_name) == ("John", "Doe")
    assert contact.account_id == account.id


@pytest.mark.asyncio
async def test_update_account_name(session_factory):
    async with session_factory() as session:
        account = await records.create_account(session, "Old", "Retail")
        await session.commit()

    async with session_factory() as session:
        renamed = await records.update_account_name(session, account.id, "New")
        await session.commit()
    assert renamed.name == "New"

    async with session_factory() as session:
        assert (await accounts_repo.get_by_id(session, account.id)).name == "New"


@pytest.mark.asyncio
async def test_update_account_name_unknown_id(session):
    with pytest.raises(RecordNotFoundError):
        await records.update_account_name(session, uuid.uuid4(), "Nobody")


@pytest.mark.asyncio
async def test_update_opportunity_stage(session):
    opps = [
        Opportunity(name=n, stage_name="Prospecting", close_date=date(2030, 1, 1))
        for n in ("One", "Two")
    ]
    await dml.insert(session, opps)

    updated = await records.update_opportunity_stage(session, opps)

    assert [o.stage_name for o in updated] == ["Qualification", "Qualification"]
    stored = await opportunities_repo.get_by_names(session, ["One", "Two"])
    assert {o.stage_name for o in stored} == {"Qualification"}


@pytest.mark.asyncio
async def test_update_account_details(session):
    accounts = [Account(name="A"), Account(name="B")]
    await dml.insert(session, accounts)

    await records.update_account_details(session, accounts, industry="Finance", account_type="Partner")

    stored = await accounts_repo.get_by_names(session, ["A", "B"])
    assert {(a.industry, a.type) for a in stored} == {("Finance", "Partner")}


@pytest.mark.asyncio
async def test_create_opportunities(session):
    account = await records.create_account(session, "Globex", "Energy")

    opps = await records.create_opportunities(session, account.id, ["Big Deal", "Small Deal"])

    assert len(opps) == 2
    expected_close = datetime.now(timezone.utc).date() + relativedelta(months=3)
    for opp in opps:
        assert opp.stage_name == "Prospecting"
        assert opp.close_date == expected_close
        assert opp.amount == Decimal("50000")
        assert opp.account_id == account.id


@pytest.mark.asyncio
async def test_delete_contacts_by_id(session):
    keep, drop = Contact(last_name="Keep"), Contact(last_name="Drop")
    await dml.insert(session, [keep, drop])

    assert await records.delete_contacts_by_id(session, [drop.id]) == 1

    remaining = await dml.query(session, select(Contact.last_name))
    assert remaining == ["Keep"]


@pytest.mark.asyncio
async def test_upsert_account_creates_new(session):
    account = await records.upsert_account(session, "Initech")

    assert account.id is not None
    assert account.description == "New Account"


@pytest.mark.asyncio
async def test_upsert_account_updates_existing(session):
    existing = await records.create_account(session, "Initech", "Software")

    account = await records.upsert_account(session, "Initech")

    assert account.id == existing.id
    assert account.description == "Updated Account"
    assert len(await accounts_repo.get_by_names(session, ["Initech"])) == 1


@pytest.mark.asyncio
async def test_upsert_account_rejects_blank_name(session):
    with pytest.raises(ValueError):
        await records.upsert_account(session, " ")


@pytest.mark.asyncio
async def test_insert_and_delete_leads_leaves_none(session):
    count = await records.insert_and_delete_leads(session, ["X", "Y"])

    assert count == 2
    assert await leads_repo.get_by_last_names(session, ["X", "Y"]) == []


@pytest.mark.asyncio
async def test_insert_and_delete_leads_empty(session):
    assert await records.insert_and_delete_leads(session, []) == 0


@pytest.mark.asyncio
async def test_create_and_delete_cases(session):
    account = await records.create_account(session, "Globex", "Energy")

    assert await records.create_and_delete_cases(session, account.id, 3) == 3
    assert await cases_repo.get_by_account(session, account.id) == []


@pytest.mark.asyncio
@pytest.mark.parametrize("count", [0, -1])
async def test_create_and_delete_cases_non_positive(session, count):
    account = await records.create_account(session, "Globex", "Energy")

    assert await records.create_and_delete_cases(session, account.id, count) == 0
    assert await dml.query(session, select(Case)) == []


@pytest.mark.asyncio
async def test_lead_roundtrip_is_rolled_back_with_unit_of_work(unit_of_work, session_factory):
    """A failure after the insert undoes the whole unit of work."""
    with pytest.raises(RuntimeError):
        async with unit_of_work() as session:
            await dml.insert(session, [Lead(last_name="Stray", company="Co")])
            raise RuntimeError("boom")

    async with session_factory() as session:
        assert await leads_repo.get_by_last_names(session, ["Stray"]) == []
