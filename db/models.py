"""SQLAlchemy 2.0 ORM models for the CRM record store.

Covers 5 tables:
  accounts, contacts, opportunities, leads, cases

Contacts, opportunities and cases link to their parent account through a
nullable account_id foreign key.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


# ---------------------------------------------------------------------------
# Shared base
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    pass


# ---------------------------------------------------------------------------
# Picklist values used in the CHECK constraints
# ---------------------------------------------------------------------------

OPPORTUNITY_STAGES = (
    "Prospecting",
    "Qualification",
    "Needs Analysis",
    "Value Proposition",
    "Proposal/Price Quote",
    "Negotiation/Review",
    "Closed Won",
    "Closed Lost",
)

CASE_STATUSES = ("New", "Working", "Escalated", "Closed")


def _in_check(column: str, values: tuple[str, ...]) -> str:
    return f"{column} IN (" + ", ".join(f"'{v}'" for v in values) + ")"


# ===========================================================================
# Records
# ===========================================================================


class Account(Base):
    """accounts — parent record for contacts, opportunities and cases."""

    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    industry: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    contacts: Mapped[list["Contact"]] = relationship(
        "Contact", back_populates="account", passive_deletes=True
    )
    opportunities: Mapped[list["Opportunity"]] = relationship(
        "Opportunity", back_populates="account", passive_deletes=True
    )
    cases: Mapped[list["Case"]] = relationship(
        "Case", back_populates="account", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Account id={self.id} name={self.name!r}>"


class Contact(Base):
    """contacts — individual people, optionally linked to an account."""

    __tablename__ = "contacts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    account_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    account: Mapped[Optional["Account"]] = relationship(
        "Account", back_populates="contacts"
    )

    def __repr__(self) -> str:
        return f"<Contact id={self.id} last_name={self.last_name!r}>"


class Opportunity(Base):
    """opportunities — deals keyed by name when reconciled against an account."""

    __tablename__ = "opportunities"
    __table_args__ = (
        CheckConstraint(
            _in_check("stage_name", OPPORTUNITY_STAGES),
            name="ck_opportunity_stage_name",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    stage_name: Mapped[str] = mapped_column(Text, nullable=False)
    close_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 2), nullable=True)
    account_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    account: Mapped[Optional["Account"]] = relationship(
        "Account", back_populates="opportunities"
    )

    def __repr__(self) -> str:
        return f"<Opportunity id={self.id} name={self.name!r} stage={self.stage_name!r}>"


class Lead(Base):
    """leads — standalone prospects, no relations."""

    __tablename__ = "leads"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    last_name: Mapped[str] = mapped_column(Text, nullable=False)
    company: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Case(Base):
    """cases — support cases raised against an account."""

    __tablename__ = "cases"
    __table_args__ = (
        CheckConstraint(_in_check("status", CASE_STATUSES), name="ck_case_status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("accounts.id", ondelete="SET NULL"), nullable=True
    )
    subject: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="New")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    account: Mapped[Optional["Account"]] = relationship(
        "Account", back_populates="cases"
    )
