from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
    event,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.database.base import Base

MONEY = Numeric(18, 2)


class AccountType(str, Enum):
    """GL account classification."""

    ASSET = "Asset"
    LIABILITY = "Liability"
    EQUITY = "Equity"
    REVENUE = "Revenue"
    EXPENSE = "Expense"

    @property
    def is_debit_normal(self) -> bool:
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class FloatAccountType(str, Enum):
    """Payment channel a branch holds float for."""

    CASH_IN_TILL = "cash-in-till"
    MOMO = "momo"
    AGENCY_BANKING = "agency-banking"
    E_ZWICH = "e-zwich"
    POWER = "power"
    JUMIA = "jumia"


class SourceModule(str, Enum):
    """Business module that originated a GL posting."""

    MANUAL = "manual"
    FLOAT_OPERATIONS = "float_operations"
    MOMO = "momo"
    AGENCY_BANKING = "agency_banking"
    E_ZWICH = "e_zwich"
    POWER = "power"
    JUMIA = "jumia"
    COMMISSIONS = "commissions"
    EXPENSES = "expenses"
    EQUITY = "equity"


class GLTransactionStatus(str, Enum):
    POSTED = "posted"
    REVERSED = "reversed"


class ServiceTransactionStatus(str, Enum):
    COMPLETED = "completed"
    REVERSED = "reversed"


class CommissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class EquityLedgerType(str, Enum):
    SHARE_CAPITAL = "share_capital"
    RETAINED_EARNINGS = "retained_earnings"
    OTHER_FUND = "other_fund"


class EntrySide(str, Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class CardBatchStatus(str, Enum):
    ACTIVE = "active"
    DEPLETED = "depleted"


class JumiaPackageStatus(str, Enum):
    """Custody of a parcel held at the branch, in the only order it may move."""

    RECEIVED = "received"
    DELIVERED = "delivered"
    SETTLED = "settled"


class Branch(Base):
    """Physical branch that holds float accounts and owns postings."""

    __tablename__ = "branches"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(32), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(128))
    location: Mapped[Optional[str]] = mapped_column(String(256), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class GLAccount(Base):
    """Chart-of-accounts row. Balances are derived from journal entries."""

    __tablename__ = "gl_accounts"
    __table_args__ = (
        UniqueConstraint("branch_id", "code", name="uq_gl_accounts_branch_code"),
        CheckConstraint(
            "account_type IN ('Asset', 'Liability', 'Equity', 'Revenue', 'Expense')",
            name="account_type_allowed",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(32), index=True)
    name: Mapped[str] = mapped_column(String(128))
    account_type: Mapped[str] = mapped_column(String(16), index=True)
    branch_id: Mapped[Optional[int]] = mapped_column(ForeignKey("branches.id"), nullable=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class GLMapping(Base):
    """Routes a (module, role) pair to a GL account, optionally per branch."""

    __tablename__ = "gl_mappings"
    __table_args__ = (
        UniqueConstraint("branch_id", "source_module", "mapping_type", name="uq_gl_mappings_scope"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[Optional[int]] = mapped_column(ForeignKey("branches.id"), nullable=True, index=True)
    source_module: Mapped[str] = mapped_column(String(32), index=True)
    mapping_type: Mapped[str] = mapped_column(String(32))
    gl_account_id: Mapped[int] = mapped_column(ForeignKey("gl_accounts.id"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class GLTransaction(Base):
    """Header of one balanced double-entry posting."""

    __tablename__ = "gl_transactions"
    __table_args__ = (
        UniqueConstraint(
            "source_module",
            "source_transaction_type",
            "source_transaction_id",
            name="uq_gl_transactions_source",
        ),
        Index("ix_gl_transactions_branch_date", "branch_id", "entry_date"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    reference: Mapped[str] = mapped_column(String(64), unique=True)
    entry_date: Mapped[date] = mapped_column(Date, index=True)
    description: Mapped[str] = mapped_column(String(512))
    source_module: Mapped[str] = mapped_column(String(32), index=True)
    source_transaction_type: Mapped[str] = mapped_column(String(64))
    source_transaction_id: Mapped[str] = mapped_column(String(64))
    status: Mapped[str] = mapped_column(String(16), default=GLTransactionStatus.POSTED.value)
    branch_id: Mapped[Optional[int]] = mapped_column(ForeignKey("branches.id"), nullable=True)
    created_by: Mapped[str] = mapped_column(String(64))
    reversal_of_id: Mapped[Optional[int]] = mapped_column(ForeignKey("gl_transactions.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)


class GLJournalEntry(Base):
    """Immutable one-sided journal line."""

    __tablename__ = "gl_journal_entries"
    __table_args__ = (
        CheckConstraint("debit >= 0 AND credit >= 0", name="sides_non_negative"),
        CheckConstraint("(debit > 0 AND credit = 0) OR (credit > 0 AND debit = 0)", name="one_sided"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[int] = mapped_column(ForeignKey("gl_transactions.id"), index=True)
    account_id: Mapped[int] = mapped_column(ForeignKey("gl_accounts.id"), index=True)
    debit: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    credit: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    description: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class FloatAccount(Base):
    """Branch-held balance for one payment channel."""

    __tablename__ = "float_accounts"
    __table_args__ = (
        UniqueConstraint("branch_id", "account_type", "provider", name="uq_float_accounts_branch_type_provider"),
        CheckConstraint("current_balance >= 0", name="balance_non_negative"),
        CheckConstraint("min_threshold >= 0", name="min_threshold_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True)
    account_type: Mapped[str] = mapped_column(String(32), index=True)
    provider: Mapped[str] = mapped_column(String(64))
    account_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    current_balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    min_threshold: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    max_threshold: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    gl_account_id: Mapped[int] = mapped_column(ForeignKey("gl_accounts.id"))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class FloatTransaction(Base):
    """Immutable balance movement of one float account."""

    __tablename__ = "float_transactions"
    __table_args__ = (Index("ix_float_transactions_account_created", "float_account_id", "created_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    float_account_id: Mapped[int] = mapped_column(ForeignKey("float_accounts.id"), index=True)
    transaction_type: Mapped[str] = mapped_column(String(32))
    amount: Mapped[Decimal] = mapped_column(MONEY)
    balance_before: Mapped[Decimal] = mapped_column(MONEY)
    balance_after: Mapped[Decimal] = mapped_column(MONEY)
    reference: Mapped[str] = mapped_column(String(64), index=True)
    description: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    processed_by: Mapped[str] = mapped_column(String(64))
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True)
    gl_transaction_id: Mapped[Optional[int]] = mapped_column(ForeignKey("gl_transactions.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)


class FeeConfig(Base):
    """Fee rule for one service transaction type."""

    __tablename__ = "fee_configs"
    __table_args__ = (
        UniqueConstraint("service", "transaction_type", name="uq_fee_configs_service_type"),
        CheckConstraint("fee_type IN ('percentage', 'fixed')", name="fee_type_allowed"),
        CheckConstraint("fee_value >= 0", name="fee_value_non_negative"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    service: Mapped[str] = mapped_column(String(32))
    transaction_type: Mapped[str] = mapped_column(String(32))
    fee_type: Mapped[str] = mapped_column(String(16))
    fee_value: Mapped[Decimal] = mapped_column(Numeric(18, 4))
    minimum_fee: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    maximum_fee: Mapped[Optional[Decimal]] = mapped_column(MONEY, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class ServiceTransaction(Base):
    """Customer-facing MoMo / agency / e-zwich / power / Jumia operation."""

    __tablename__ = "service_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint("fee >= 0", name="fee_non_negative"),
        Index("ix_service_transactions_branch_created", "branch_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True)
    service: Mapped[str] = mapped_column(String(32), index=True)
    transaction_type: Mapped[str] = mapped_column(String(32))
    provider: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    float_account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("float_accounts.id"), nullable=True)
    amount: Mapped[Decimal] = mapped_column(MONEY)
    fee: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    customer_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    reference: Mapped[str] = mapped_column(String(64), unique=True)
    status: Mapped[str] = mapped_column(String(16), default=ServiceTransactionStatus.COMPLETED.value)
    processed_by: Mapped[str] = mapped_column(String(64))
    gl_transaction_id: Mapped[Optional[int]] = mapped_column(ForeignKey("gl_transactions.id"), nullable=True)
    reversal_gl_transaction_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("gl_transactions.id"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)


class Commission(Base):
    """Receivable from a partner, recognized on creation and settled into float."""

    __tablename__ = "commissions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint("status IN ('pending', 'approved', 'rejected', 'paid')", name="status_allowed"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True)
    source: Mapped[str] = mapped_column(String(32), index=True)
    source_name: Mapped[str] = mapped_column(String(128))
    float_account_id: Mapped[int] = mapped_column(ForeignKey("float_accounts.id"))
    amount: Mapped[Decimal] = mapped_column(MONEY)
    month: Mapped[date] = mapped_column(Date)
    reference: Mapped[str] = mapped_column(String(64), unique=True)
    description: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=CommissionStatus.PENDING.value, index=True)
    created_by: Mapped[str] = mapped_column(String(64))
    approved_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    approval_notes: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    paid_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    paid_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    payment_reference: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class Expense(Base):
    """Branch expense paid from a float account on approval."""

    __tablename__ = "expenses"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint("status IN ('pending', 'approved', 'rejected')", name="status_allowed"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True)
    category: Mapped[str] = mapped_column(String(32))
    amount: Mapped[Decimal] = mapped_column(MONEY)
    description: Mapped[str] = mapped_column(String(512))
    float_account_id: Mapped[int] = mapped_column(ForeignKey("float_accounts.id"))
    expense_date: Mapped[date] = mapped_column(Date, index=True)
    reference: Mapped[str] = mapped_column(String(64), unique=True)
    status: Mapped[str] = mapped_column(String(16), default=ExpenseStatus.PENDING.value, index=True)
    created_by: Mapped[str] = mapped_column(String(64))
    approved_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    gl_transaction_id: Mapped[Optional[int]] = mapped_column(ForeignKey("gl_transactions.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class EquityTransaction(Base):
    """Owner contribution to or drawing from an equity ledger."""

    __tablename__ = "equity_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="amount_positive"),
        CheckConstraint(
            "ledger_type IN ('share_capital', 'retained_earnings', 'other_fund')",
            name="ledger_type_allowed",
        ),
        CheckConstraint("direction IN ('debit', 'credit')", name="direction_allowed"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True)
    ledger_type: Mapped[str] = mapped_column(String(32), index=True)
    direction: Mapped[str] = mapped_column(String(8))
    amount: Mapped[Decimal] = mapped_column(MONEY)
    float_account_id: Mapped[int] = mapped_column(ForeignKey("float_accounts.id"))
    particulars: Mapped[str] = mapped_column(String(512))
    transaction_date: Mapped[date] = mapped_column(Date, index=True)
    created_by: Mapped[str] = mapped_column(String(64))
    gl_transaction_id: Mapped[Optional[int]] = mapped_column(ForeignKey("gl_transactions.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class EZwichCardBatch(Base):
    """Stock of blank e-zwich cards bought from a partner bank."""

    __tablename__ = "ezwich_card_batches"
    __table_args__ = (
        CheckConstraint("quantity_received > 0", name="quantity_received_positive"),
        CheckConstraint(
            "quantity_issued >= 0 AND quantity_issued <= quantity_received", name="quantity_issued_in_range"
        ),
        CheckConstraint("unit_cost >= 0", name="unit_cost_non_negative"),
        CheckConstraint("status IN ('active', 'depleted')", name="status_allowed"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True)
    batch_code: Mapped[str] = mapped_column(String(64), unique=True)
    card_type: Mapped[str] = mapped_column(String(32), default="standard")
    quantity_received: Mapped[int] = mapped_column()
    quantity_issued: Mapped[int] = mapped_column(default=0)
    unit_cost: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    total_cost: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    partner_bank: Mapped[str] = mapped_column(String(128))
    payment_float_account_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("float_accounts.id"), nullable=True
    )
    expiry_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=CardBatchStatus.ACTIVE.value)
    notes: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    created_by: Mapped[str] = mapped_column(String(64))
    gl_transaction_id: Mapped[Optional[int]] = mapped_column(ForeignKey("gl_transactions.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    @property
    def quantity_available(self) -> int:
        return self.quantity_received - self.quantity_issued


class EZwichCardIssuance(Base):
    """One card handed to a customer out of a batch."""

    __tablename__ = "ezwich_card_issuances"
    __table_args__ = (CheckConstraint("fee_charged >= 0", name="fee_non_negative"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True)
    batch_id: Mapped[int] = mapped_column(ForeignKey("ezwich_card_batches.id"), index=True)
    card_number: Mapped[str] = mapped_column(String(32), unique=True)
    customer_name: Mapped[str] = mapped_column(String(128))
    customer_phone: Mapped[str] = mapped_column(String(32))
    id_type: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    id_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    fee_charged: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    float_account_id: Mapped[Optional[int]] = mapped_column(ForeignKey("float_accounts.id"), nullable=True)
    issue_date: Mapped[date] = mapped_column(Date)
    expiry_date: Mapped[date] = mapped_column(Date)
    issued_by: Mapped[str] = mapped_column(String(64))
    gl_transaction_id: Mapped[Optional[int]] = mapped_column(ForeignKey("gl_transactions.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)


class JumiaPackage(Base):
    """Parcel received from Jumia and held at a branch for customer pickup."""

    __tablename__ = "jumia_packages"
    __table_args__ = (
        UniqueConstraint("branch_id", "tracking_id", name="uq_jumia_packages_branch_tracking"),
        CheckConstraint("status IN ('received', 'delivered', 'settled')", name="status_allowed"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    branch_id: Mapped[int] = mapped_column(ForeignKey("branches.id"), index=True)
    tracking_id: Mapped[str] = mapped_column(String(64))
    customer_name: Mapped[str] = mapped_column(String(128))
    customer_phone: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default=JumiaPackageStatus.RECEIVED.value, index=True)
    received_by: Mapped[str] = mapped_column(String(64))
    received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    settled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    settlement_reference: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class AuditLog(Base):
    """Who did what to which entity, written with the change itself."""

    __tablename__ = "audit_logs"
    __table_args__ = (Index("ix_audit_logs_entity", "entity_type", "entity_id"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    actor_id: Mapped[str] = mapped_column(String(64), index=True)
    actor_name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    action: Mapped[str] = mapped_column(String(64))
    entity_type: Mapped[str] = mapped_column(String(32))
    entity_id: Mapped[str] = mapped_column(String(64))
    severity: Mapped[str] = mapped_column(String(8), default="low")
    details: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    branch_id: Mapped[Optional[int]] = mapped_column(ForeignKey("branches.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)


@event.listens_for(GLJournalEntry, "before_update", propagate=True)
@event.listens_for(FloatTransaction, "before_update", propagate=True)
def _prevent_update(_mapper, _connection, target):
    """Journal lines and float movements are append-only."""

    raise ValueError(f"{type(target).__name__} rows are immutable and cannot be updated")


@event.listens_for(GLJournalEntry, "before_delete", propagate=True)
@event.listens_for(FloatTransaction, "before_delete", propagate=True)
def _prevent_delete(_mapper, _connection, target):
    """Journal lines and float movements are append-only."""

    raise ValueError(f"{type(target).__name__} rows are immutable and cannot be deleted")
