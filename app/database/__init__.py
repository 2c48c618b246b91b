"""Database package exports."""

from app.database.base import Base
from app.database.models import (
    AuditLog,
    Branch,
    Commission,
    EquityTransaction,
    Expense,
    EZwichCardBatch,
    EZwichCardIssuance,
    FeeConfig,
    FloatAccount,
    FloatTransaction,
    GLAccount,
    GLJournalEntry,
    GLMapping,
    GLTransaction,
    JumiaPackage,
    ServiceTransaction,
)

__all__ = [
    "Base",
    "AuditLog",
    "Branch",
    "Commission",
    "EquityTransaction",
    "Expense",
    "EZwichCardBatch",
    "EZwichCardIssuance",
    "FeeConfig",
    "FloatAccount",
    "FloatTransaction",
    "GLAccount",
    "GLJournalEntry",
    "GLMapping",
    "GLTransaction",
    "JumiaPackage",
    "ServiceTransaction",
]
