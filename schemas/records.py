"""Record input/output schemas for the CLI."""
from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class AccountOut(_Record):
    id: UUID
    name: str
    industry: Optional[str] = None
    type: Optional[str] = None
    description: Optional[str] = None


class ContactIn(BaseModel):
    first_name: Optional[str] = None
    last_name: str = Field(min_length=1)


class ContactOut(_Record):
    id: UUID
    first_name: Optional[str] = None
    last_name: str
    account_id: Optional[UUID] = None


class OpportunityOut(_Record):
    id: UUID
    name: str
    stage_name: str
    close_date: date
    amount: Optional[Decimal] = None
    account_id: Optional[UUID] = None


class CaseOut(_Record):
    id: UUID
    account_id: Optional[UUID] = None
    subject: Optional[str] = None
    status: str
