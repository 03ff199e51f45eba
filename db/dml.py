"""Generic DML calls — insert, update, upsert, delete and query over ORM records.

Each call works on a batch of records of any mapped model, flushes once, and
lets database errors propagate. Nothing here commits: the caller owns the unit
of work (see db.connection.get_db).
"""
import logging
import uuid
from typing import Any, Iterable, Optional, Sequence, TypeVar

from sqlalchemy import Select, inspect
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import Base

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=Base)


class DmlError(Exception):
    """A DML call was rejected before reaching the database."""


class RecordNotFoundError(DmlError):
    """An update, delete or lookup referenced an id that is not stored."""

    def __init__(self, model: type, record_id: Optional[Any]):
        self.model = model
        self.record_id = record_id
        super().__init__(f"{model.__name__} with id {record_id} does not exist")


def _label(records: Sequence[Base]) -> str:
    return ", ".join(sorted({type(r).__name__ for r in records}))


async def _stored_copy(session: AsyncSession, record: RecordT) -> RecordT:
    """Return the persistent row matching record's id, or raise RecordNotFoundError."""
    record_id = getattr(record, "id", None)
    if record_id is None:
        raise RecordNotFoundError(type(record), None)
    stored = await session.get(type(record), record_id)
    if stored is None:
        raise RecordNotFoundError(type(record), record_id)
    return stored


async def insert(session: AsyncSession, records: Iterable[RecordT]) -> list[RecordT]:
    """Insert new records; ids are assigned on flush.

    Raises DmlError if any record is already stored.
    """
    records = list(records)
    if not records:
        return records
    for record in records:
        state = inspect(record)
        if state.persistent or state.detached:
            raise DmlError(f"{record!r} is already stored; use update or upsert")
    session.add_all(records)
    await session.flush()
    logger.info("Inserted %d %s record(s)", len(records), _label(records))
    return records


async def update(session: AsyncSession, records: Iterable[RecordT]) -> list[RecordT]:
    """Write changes on existing records.

    Records not attached to this session (for example ``Account(id=..., name=...)``)
    are merged onto the stored row; only the attributes set on them are written.
    Raises RecordNotFoundError if any record's id is missing or unknown.
    """
    records = list(records)
    if not records:
        return records
    updated = []
    for record in records:
        if inspect(record).persistent:
            updated.append(record)
            continue
        await _stored_copy(session, record)
        updated.append(await session.merge(record))
    await session.flush()
    logger.info("Updated %d %s record(s)", len(updated), _label(updated))
    return updated


async def upsert(session: AsyncSession, records: Iterable[RecordT]) -> list[RecordT]:
    """Insert records without an id, merge records that carry one.

    A record carrying an id that is not stored yet is inserted under that id.
    Returns the persistent instances in input order.
    """
    records = list(records)
    if not records:
        return records
    upserted = []
    inserted = 0
    for record in records:
        state = inspect(record)
        if state.persistent or state.pending:
            upserted.append(record)
        elif state.transient and getattr(record, "id", None) is None:
            session.add(record)
            upserted.append(record)
            inserted += 1
        else:
            upserted.append(await session.merge(record))
    await session.flush()
    logger.info(
        "Upserted %d %s record(s), %d without an id",
        len(upserted), _label(upserted), inserted,
    )
    return upserted


async def delete(session: AsyncSession, records: Iterable[Base]) -> int:
    """Delete records by id. Returns the number of rows removed.

    Raises RecordNotFoundError if any id is unknown.
    """
    records = list(records)
    if not records:
        return 0
    targets: dict[tuple[type, uuid.UUID], Base] = {}
    for record in records:
        target = record if inspect(record).persistent else await _stored_copy(session, record)
        targets[(type(target), target.id)] = target
    for target in targets.values():
        await session.delete(target)
    await session.flush()
    logger.info("Deleted %d %s record(s)", len(targets), _label(records))
    return len(targets)


async def delete_by_ids(
    session: AsyncSession, model: type[RecordT], ids: Iterable[uuid.UUID]
) -> int:
    """Delete rows of model by id."""
    return await delete(session, [model(id=record_id) for record_id in ids])


async def query(session: AsyncSession, stmt: Select) -> list[Any]:
    """Run a select() and return the first entity of each row."""
    result = await session.execute(stmt)
    return list(result.scalars().all())
