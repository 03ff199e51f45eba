from .records import (
    AccountOut,
    ContactIn,
    ContactOut,
    OpportunityOut,
    CaseOut,
)

__all__ = [
    "AccountOut", "ContactIn", "ContactOut", "OpportunityOut", "CaseOut",
]
