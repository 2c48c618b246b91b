"""Initial schema for branches, float accounts and the general ledger.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(18, 2)


def _created_at(index: bool = False) -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
        index=index,
    )


def upgrade() -> None:
    op.create_table(
        "branches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("location", sa.String(length=256), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_branches")),
    )
    op.create_index(op.f("ix_branches_code"), "branches", ["code"], unique=True)

    op.create_table(
        "gl_accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("account_type", sa.String(length=16), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _created_at(),
        sa.CheckConstraint(
            "account_type IN ('Asset', 'Liability', 'Equity', 'Revenue', 'Expense')",
            name=op.f("ck_gl_accounts_account_type_allowed"),
        ),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], name=op.f("fk_gl_accounts_branch_id_branches")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_gl_accounts")),
        sa.UniqueConstraint("branch_id", "code", name="uq_gl_accounts_branch_code"),
    )
    op.create_index(op.f("ix_gl_accounts_code"), "gl_accounts", ["code"], unique=False)
    op.create_index(op.f("ix_gl_accounts_account_type"), "gl_accounts", ["account_type"], unique=False)
    op.create_index(op.f("ix_gl_accounts_branch_id"), "gl_accounts", ["branch_id"], unique=False)

    op.create_table(
        "gl_mappings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("source_module", sa.String(length=32), nullable=False),
        sa.Column("mapping_type", sa.String(length=32), nullable=False),
        sa.Column("gl_account_id", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], name=op.f("fk_gl_mappings_branch_id_branches")),
        sa.ForeignKeyConstraint(
            ["gl_account_id"],
            ["gl_accounts.id"],
            name=op.f("fk_gl_mappings_gl_account_id_gl_accounts"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_gl_mappings")),
        sa.UniqueConstraint("branch_id", "source_module", "mapping_type", name="uq_gl_mappings_scope"),
    )
    op.create_index(op.f("ix_gl_mappings_branch_id"), "gl_mappings", ["branch_id"], unique=False)
    op.create_index(op.f("ix_gl_mappings_source_module"), "gl_mappings", ["source_module"], unique=False)

    op.create_table(
        "gl_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("reference", sa.String(length=64), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=False),
        sa.Column("source_module", sa.String(length=32), nullable=False),
        sa.Column("source_transaction_type", sa.String(length=64), nullable=False),
        sa.Column("source_transaction_id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("reversal_of_id", sa.Integer(), nullable=True),
        _created_at(index=True),
        sa.ForeignKeyConstraint(
            ["branch_id"], ["branches.id"], name=op.f("fk_gl_transactions_branch_id_branches")
        ),
        sa.ForeignKeyConstraint(
            ["reversal_of_id"],
            ["gl_transactions.id"],
            name=op.f("fk_gl_transactions_reversal_of_id_gl_transactions"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_gl_transactions")),
        sa.UniqueConstraint("reference", name=op.f("uq_gl_transactions_reference")),
        sa.UniqueConstraint(
            "source_module",
            "source_transaction_type",
            "source_transaction_id",
            name="uq_gl_transactions_source",
        ),
    )
    op.create_index(op.f("ix_gl_transactions_entry_date"), "gl_transactions", ["entry_date"], unique=False)
    op.create_index(op.f("ix_gl_transactions_source_module"), "gl_transactions", ["source_module"], unique=False)
    op.create_index("ix_gl_transactions_branch_date", "gl_transactions", ["branch_id", "entry_date"], unique=False)

    op.create_table(
        "gl_journal_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("account_id", sa.Integer(), nullable=False),
        sa.Column("debit", MONEY, nullable=False),
        sa.Column("credit", MONEY, nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        _created_at(),
        sa.CheckConstraint("debit >= 0 AND credit >= 0", name=op.f("ck_gl_journal_entries_sides_non_negative")),
        sa.CheckConstraint(
            "(debit > 0 AND credit = 0) OR (credit > 0 AND debit = 0)",
            name=op.f("ck_gl_journal_entries_one_sided"),
        ),
        sa.ForeignKeyConstraint(
            ["account_id"], ["gl_accounts.id"], name=op.f("fk_gl_journal_entries_account_id_gl_accounts")
        ),
        sa.ForeignKeyConstraint(
            ["transaction_id"],
            ["gl_transactions.id"],
            name=op.f("fk_gl_journal_entries_transaction_id_gl_transactions"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_gl_journal_entries")),
    )
    op.create_index(
        op.f("ix_gl_journal_entries_transaction_id"), "gl_journal_entries", ["transaction_id"], unique=False
    )
    op.create_index(op.f("ix_gl_journal_entries_account_id"), "gl_journal_entries", ["account_id"], unique=False)

    op.create_table(
        "float_accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("account_type", sa.String(length=32), nullable=False),
        sa.Column("provider", sa.String(length=64), nullable=False),
        sa.Column("account_number", sa.String(length=64), nullable=True),
        sa.Column("current_balance", MONEY, nullable=False),
        sa.Column("min_threshold", MONEY, nullable=False),
        sa.Column("max_threshold", MONEY, nullable=True),
        sa.Column("gl_account_id", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("current_balance >= 0", name=op.f("ck_float_accounts_balance_non_negative")),
        sa.CheckConstraint("min_threshold >= 0", name=op.f("ck_float_accounts_min_threshold_non_negative")),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], name=op.f("fk_float_accounts_branch_id_branches")),
        sa.ForeignKeyConstraint(
            ["gl_account_id"], ["gl_accounts.id"], name=op.f("fk_float_accounts_gl_account_id_gl_accounts")
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_float_accounts")),
        sa.UniqueConstraint(
            "branch_id", "account_type", "provider", name="uq_float_accounts_branch_type_provider"
        ),
    )
    op.create_index(op.f("ix_float_accounts_branch_id"), "float_accounts", ["branch_id"], unique=False)
    op.create_index(op.f("ix_float_accounts_account_type"), "float_accounts", ["account_type"], unique=False)

    op.create_table(
        "float_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("float_account_id", sa.Integer(), nullable=False),
        sa.Column("transaction_type", sa.String(length=32), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("balance_before", MONEY, nullable=False),
        sa.Column("balance_after", MONEY, nullable=False),
        sa.Column("reference", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("processed_by", sa.String(length=64), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("gl_transaction_id", sa.Integer(), nullable=True),
        _created_at(index=True),
        sa.ForeignKeyConstraint(
            ["branch_id"], ["branches.id"], name=op.f("fk_float_transactions_branch_id_branches")
        ),
        sa.ForeignKeyConstraint(
            ["float_account_id"],
            ["float_accounts.id"],
            name=op.f("fk_float_transactions_float_account_id_float_accounts"),
        ),
        sa.ForeignKeyConstraint(
            ["gl_transaction_id"],
            ["gl_transactions.id"],
            name=op.f("fk_float_transactions_gl_transaction_id_gl_transactions"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_float_transactions")),
    )
    op.create_index(
        op.f("ix_float_transactions_float_account_id"), "float_transactions", ["float_account_id"], unique=False
    )
    op.create_index(op.f("ix_float_transactions_reference"), "float_transactions", ["reference"], unique=False)
    op.create_index(op.f("ix_float_transactions_branch_id"), "float_transactions", ["branch_id"], unique=False)
    op.create_index(
        "ix_float_transactions_account_created",
        "float_transactions",
        ["float_account_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "fee_configs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("service", sa.String(length=32), nullable=False),
        sa.Column("transaction_type", sa.String(length=32), nullable=False),
        sa.Column("fee_type", sa.String(length=16), nullable=False),
        sa.Column("fee_value", sa.Numeric(18, 4), nullable=False),
        sa.Column("minimum_fee", MONEY, nullable=True),
        sa.Column("maximum_fee", MONEY, nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("fee_type IN ('percentage', 'fixed')", name=op.f("ck_fee_configs_fee_type_allowed")),
        sa.CheckConstraint("fee_value >= 0", name=op.f("ck_fee_configs_fee_value_non_negative")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_fee_configs")),
        sa.UniqueConstraint("service", "transaction_type", name="uq_fee_configs_service_type"),
    )

    op.create_table(
        "service_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("service", sa.String(length=32), nullable=False),
        sa.Column("transaction_type", sa.String(length=32), nullable=False),
        sa.Column("provider", sa.String(length=64), nullable=True),
        sa.Column("float_account_id", sa.Integer(), nullable=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("fee", MONEY, nullable=False),
        sa.Column("customer_name", sa.String(length=128), nullable=True),
        sa.Column("phone_number", sa.String(length=32), nullable=True),
        sa.Column("reference", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("processed_by", sa.String(length=64), nullable=False),
        sa.Column("gl_transaction_id", sa.Integer(), nullable=True),
        sa.Column("reversal_gl_transaction_id", sa.Integer(), nullable=True),
        _created_at(index=True),
        sa.CheckConstraint("amount > 0", name=op.f("ck_service_transactions_amount_positive")),
        sa.CheckConstraint("fee >= 0", name=op.f("ck_service_transactions_fee_non_negative")),
        sa.ForeignKeyConstraint(
            ["branch_id"], ["branches.id"], name=op.f("fk_service_transactions_branch_id_branches")
        ),
        sa.ForeignKeyConstraint(
            ["float_account_id"],
            ["float_accounts.id"],
            name=op.f("fk_service_transactions_float_account_id_float_accounts"),
        ),
        sa.ForeignKeyConstraint(
            ["gl_transaction_id"],
            ["gl_transactions.id"],
            name=op.f("fk_service_transactions_gl_transaction_id_gl_transactions"),
        ),
        sa.ForeignKeyConstraint(
            ["reversal_gl_transaction_id"],
            ["gl_transactions.id"],
            name=op.f("fk_service_transactions_reversal_gl_transaction_id_gl_transactions"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_service_transactions")),
        sa.UniqueConstraint("reference", name=op.f("uq_service_transactions_reference")),
    )
    op.create_index(op.f("ix_service_transactions_branch_id"), "service_transactions", ["branch_id"], unique=False)
    op.create_index(op.f("ix_service_transactions_service"), "service_transactions", ["service"], unique=False)
    op.create_index(
        "ix_service_transactions_branch_created",
        "service_transactions",
        ["branch_id", "created_at"],
        unique=False,
    )

    op.create_table(
        "commissions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(length=32), nullable=False),
        sa.Column("source_name", sa.String(length=128), nullable=False),
        sa.Column("float_account_id", sa.Integer(), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("month", sa.Date(), nullable=False),
        sa.Column("reference", sa.String(length=64), nullable=False),
        sa.Column("description", sa.String(length=512), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("approved_by", sa.String(length=64), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_notes", sa.String(length=512), nullable=True),
        sa.Column("paid_by", sa.String(length=64), nullable=True),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_method", sa.String(length=32), nullable=True),
        sa.Column("payment_reference", sa.String(length=64), nullable=True),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.CheckConstraint("amount > 0", name=op.f("ck_commissions_amount_positive")),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected', 'paid')", name=op.f("ck_commissions_status_allowed")
        ),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], name=op.f("fk_commissions_branch_id_branches")),
        sa.ForeignKeyConstraint(
            ["float_account_id"],
            ["float_accounts.id"],
            name=op.f("fk_commissions_float_account_id_float_accounts"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_commissions")),
        sa.UniqueConstraint("reference", name=op.f("uq_commissions_reference")),
    )
    op.create_index(op.f("ix_commissions_branch_id"), "commissions", ["branch_id"], unique=False)
    op.create_index(op.f("ix_commissions_source"), "commissions", ["source"], unique=False)
    op.create_index(op.f("ix_commissions_status"), "commissions", ["status"], unique=False)

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("description", sa.String(length=512), nullable=False),
        sa.Column("float_account_id", sa.Integer(), nullable=False),
        sa.Column("expense_date", sa.Date(), nullable=False),
        sa.Column("reference", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("approved_by", sa.String(length=64), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.String(length=512), nullable=True),
        sa.Column("gl_transaction_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint("amount > 0", name=op.f("ck_expenses_amount_positive")),
        sa.CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')", name=op.f("ck_expenses_status_allowed")
        ),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], name=op.f("fk_expenses_branch_id_branches")),
        sa.ForeignKeyConstraint(
            ["float_account_id"],
            ["float_accounts.id"],
            name=op.f("fk_expenses_float_account_id_float_accounts"),
        ),
        sa.ForeignKeyConstraint(
            ["gl_transaction_id"],
            ["gl_transactions.id"],
            name=op.f("fk_expenses_gl_transaction_id_gl_transactions"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_expenses")),
        sa.UniqueConstraint("reference", name=op.f("uq_expenses_reference")),
    )
    op.create_index(op.f("ix_expenses_branch_id"), "expenses", ["branch_id"], unique=False)
    op.create_index(op.f("ix_expenses_expense_date"), "expenses", ["expense_date"], unique=False)
    op.create_index(op.f("ix_expenses_status"), "expenses", ["status"], unique=False)

    op.create_table(
        "equity_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("ledger_type", sa.String(length=32), nullable=False),
        sa.Column("direction", sa.String(length=8), nullable=False),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("float_account_id", sa.Integer(), nullable=False),
        sa.Column("particulars", sa.String(length=512), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("gl_transaction_id", sa.Integer(), nullable=True),
        _created_at(),
        sa.CheckConstraint("amount > 0", name=op.f("ck_equity_transactions_amount_positive")),
        sa.CheckConstraint(
            "ledger_type IN ('share_capital', 'retained_earnings', 'other_fund')",
            name=op.f("ck_equity_transactions_ledger_type_allowed"),
        ),
        sa.CheckConstraint(
            "direction IN ('debit', 'credit')", name=op.f("ck_equity_transactions_direction_allowed")
        ),
        sa.ForeignKeyConstraint(
            ["branch_id"], ["branches.id"], name=op.f("fk_equity_transactions_branch_id_branches")
        ),
        sa.ForeignKeyConstraint(
            ["float_account_id"],
            ["float_accounts.id"],
            name=op.f("fk_equity_transactions_float_account_id_float_accounts"),
        ),
        sa.ForeignKeyConstraint(
            ["gl_transaction_id"],
            ["gl_transactions.id"],
            name=op.f("fk_equity_transactions_gl_transaction_id_gl_transactions"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_equity_transactions")),
    )
    op.create_index(op.f("ix_equity_transactions_branch_id"), "equity_transactions", ["branch_id"], unique=False)
    op.create_index(
        op.f("ix_equity_transactions_ledger_type"), "equity_transactions", ["ledger_type"], unique=False
    )
    op.create_index(
        op.f("ix_equity_transactions_transaction_date"), "equity_transactions", ["transaction_date"], unique=False
    )

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("actor_id", sa.String(length=64), nullable=False),
        sa.Column("actor_name", sa.String(length=128), nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=32), nullable=False),
        sa.Column("entity_id", sa.String(length=64), nullable=False),
        sa.Column("severity", sa.String(length=8), nullable=False),
        sa.Column("details", sa.JSON(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        _created_at(index=True),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], name=op.f("fk_audit_logs_branch_id_branches")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_audit_logs")),
    )
    op.create_index(op.f("ix_audit_logs_actor_id"), "audit_logs", ["actor_id"], unique=False)
    op.create_index("ix_audit_logs_entity", "audit_logs", ["entity_type", "entity_id"], unique=False)


def downgrade() -> None:
    for table in (
        "audit_logs",
        "equity_transactions",
        "expenses",
        "commissions",
        "service_transactions",
        "fee_configs",
        "float_transactions",
        "float_accounts",
        "gl_journal_entries",
        "gl_transactions",
        "gl_mappings",
        "gl_accounts",
        "branches",
    ):
        op.drop_table(table)
