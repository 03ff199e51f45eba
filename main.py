"""CRM record operations — command-line entry point.

Each subcommand runs one operation inside a single unit of work and prints
the resulting records as JSON.

Usage:
  # Create the tables on a fresh local database
  python main.py init-db

  # Find-or-create an account and upsert opportunities under it
  python main.py upsert-opportunities --account-name Acme --names OppA OppB

  # Link contacts to accounts named after their last names
  python main.py upsert-contacts --contacts '[{"first_name": "Jane", "last_name": "Doe"}]'

  # Insert then delete leads / cases
  python main.py leads-roundtrip --names X Y
  python main.py cases-roundtrip --account-id <uuid> --count 3
"""
import argparse
import asyncio
import json
import logging
import sys
import uuid
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.exc import IntegrityError

from db.connection import create_all, dispose_engine, get_db
from db.dml import RecordNotFoundError
from db.models import Account, Contact
from db.repositories import accounts as accounts_repo
from db.repositories import cases as cases_repo
from db.repositories import contacts as contacts_repo
from db.repositories import opportunities as opportunities_repo
from operations import records, reconcile
from schemas import AccountOut, CaseOut, ContactIn, ContactOut, OpportunityOut

logger = logging.getLogger(__name__)

_contacts_adapter = TypeAdapter(list[ContactIn])


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def run_create_account(name: str, industry: str) -> dict:
    async with get_db() as session:
        account = await records.create_account(session, name, industry)
    return AccountOut.model_validate(account).model_dump(mode="json")


async def run_rename_account(account_id: uuid.UUID, new_name: str) -> dict:
    async with get_db() as session:
        account = await records.update_account_name(session, account_id, new_name)
    return AccountOut.model_validate(account).model_dump(mode="json")


async def run_upsert_account(name: str) -> dict:
    async with get_db() as session:
        account = await records.upsert_account(session, name)
    return AccountOut.model_validate(account).model_dump(mode="json")


async def run_create_opportunities(account_id: uuid.UUID, names: list[str]) -> list[dict]:
    async with get_db() as session:
        opps = await records.create_opportunities(session, account_id, names)
    return [OpportunityOut.model_validate(o).model_dump(mode="json") for o in opps]


async def run_upsert_opportunities(account_name: str, names: list[str]) -> dict:
    async with get_db() as session:
        account = await reconcile.upsert_opportunities_for_account(session, account_name, names)
        opps = await opportunities_repo.get_by_account(session, account.id)
    return {
        "account": AccountOut.model_validate(account).model_dump(mode="json"),
        "opportunities": [OpportunityOut.model_validate(o).model_dump(mode="json") for o in opps],
    }


async def run_upsert_contacts(raw_contacts: str) -> dict:
    contacts_in = _contacts_adapter.validate_json(raw_contacts)
    contacts = [Contact(first_name=c.first_name, last_name=c.last_name) for c in contacts_in]
    async with get_db() as session:
        accounts = await reconcile.upsert_accounts_with_contacts(session, contacts)
    return {
        "accounts": [AccountOut.model_validate(a).model_dump(mode="json") for a in accounts],
        "contacts": [ContactOut.model_validate(c).model_dump(mode="json") for c in contacts],
    }


async def run_leads_roundtrip(names: list[str]) -> dict:
    async with get_db() as session:
        count = await records.insert_and_delete_leads(session, names)
    return {"inserted_and_deleted": count}


async def run_cases_roundtrip(account_id: uuid.UUID, count: int) -> dict:
    async with get_db() as session:
        deleted = await records.create_and_delete_cases(session, account_id, count)
    return {"account_id": str(account_id), "inserted_and_deleted": deleted}


async def run_show_account(name: str) -> dict:
    async with get_db() as session:
        account = await accounts_repo.get_by_name(session, name)
        if account is None:
            raise RecordNotFoundError(Account, name)
        contacts = await contacts_repo.get_by_account(session, account.id)
        opps = await opportunities_repo.get_by_account(session, account.id)
        cases = await cases_repo.get_by_account(session, account.id)
    return {
        "account": AccountOut.model_validate(account).model_dump(mode="json"),
        "contacts": [ContactOut.model_validate(c).model_dump(mode="json") for c in contacts],
        "opportunities": [OpportunityOut.model_validate(o).model_dump(mode="json") for o in opps],
        "cases": [CaseOut.model_validate(c).model_dump(mode="json") for c in cases],
    }


def _build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="CRM record operations")
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("init-db", help="Create all tables (local/dev databases)")

    create = sub.add_parser("create-account", help="Insert an account")
    create.add_argument("--name", required=True)
    create.add_argument("--industry", required=True)

    rename = sub.add_parser("rename-account", help="Rename an existing account")
    rename.add_argument("--id", required=True, type=uuid.UUID)
    rename.add_argument("--name", required=True)

    upsert_acc = sub.add_parser("upsert-account", help="Find-or-create an account by name")
    upsert_acc.add_argument("--name", required=True)

    create_opps = sub.add_parser("create-opportunities", help="Create opportunities under an account")
    create_opps.add_argument("--account-id", required=True, type=uuid.UUID)
    create_opps.add_argument("--names", nargs="+", required=True)

    upsert_opps = sub.add_parser(
        "upsert-opportunities", help="Link opportunities by name to an account, creating missing ones"
    )
    upsert_opps.add_argument("--account-name", required=True)
    upsert_opps.add_argument("--names", nargs="*", default=[])

    upsert_contacts = sub.add_parser(
        "upsert-contacts", help="Link contacts to accounts named after their last names"
    )
    upsert_contacts.add_argument(
        "--contacts", required=True, help='JSON list, e.g. [{"first_name": "Jane", "last_name": "Doe"}]'
    )

    leads = sub.add_parser("leads-roundtrip", help="Insert then delete leads")
    leads.add_argument("--names", nargs="+", required=True)

    cases = sub.add_parser("cases-roundtrip", help="Insert then delete cases for an account")
    cases.add_argument("--account-id", required=True, type=uuid.UUID)
    cases.add_argument("--count", type=int, default=1)

    show = sub.add_parser("show-account", help="Print an account with its related records")
    show.add_argument("--name", required=True)

    return parser


async def _dispatch(args: argparse.Namespace) -> Any:
    try:
        if args.command == "init-db":
            await create_all()
            return {"initialized": True}
        if args.command == "create-account":
            return await run_create_account(args.name, args.industry)
        if args.command == "rename-account":
            return await run_rename_account(args.id, args.name)
        if args.command == "upsert-account":
            return await run_upsert_account(args.name)
        if args.command == "create-opportunities":
            return await run_create_opportunities(args.account_id, args.names)
        if args.command == "upsert-opportunities":
            return await run_upsert_opportunities(args.account_name, args.names)
        if args.command == "upsert-contacts":
            return await run_upsert_contacts(args.contacts)
        if args.command == "leads-roundtrip":
            return await run_leads_roundtrip(args.names)
        if args.command == "cases-roundtrip":
            return await run_cases_roundtrip(args.account_id, args.count)
        if args.command == "show-account":
            return await run_show_account(args.name)
        raise ValueError(f"Unknown command: {args.command}")
    finally:
        await dispose_engine()


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s %(message)s")
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        _emit(asyncio.run(_dispatch(args)))
    except RecordNotFoundError as e:
        logger.error("%s", e)
        return 2
    except (ValidationError, ValueError) as e:
        logger.error("Invalid input: %s", e)
        return 3
    except IntegrityError as e:
        logger.error("Rejected by the database: %s", e.orig)
        return 4
    return 0


if __name__ == "__main__":
    sys.exit(main())
