"""E-zwich card stock and Jumia package custody.

Revision ID: 0002_ezwich_jumia
Revises: 0001_initial
Create Date: 2026-10-19 00:00:00
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0002_ezwich_jumia"
down_revision = "0001_initial"
branch_labels = None
depends_on = None

MONEY = sa.Numeric(18, 2)


def _timestamp(name: str, index: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False, index=index)


def upgrade() -> None:
    op.create_table(
        "ezwich_card_batches",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("batch_code", sa.String(length=64), nullable=False),
        sa.Column("card_type", sa.String(length=32), nullable=False),
        sa.Column("quantity_received", sa.Integer(), nullable=False),
        sa.Column("quantity_issued", sa.Integer(), nullable=False),
        sa.Column("unit_cost", MONEY, nullable=False),
        sa.Column("total_cost", MONEY, nullable=False),
        sa.Column("partner_bank", sa.String(length=128), nullable=False),
        sa.Column("payment_float_account_id", sa.Integer(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("notes", sa.String(length=512), nullable=True),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("gl_transaction_id", sa.Integer(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint("quantity_received > 0", name=op.f("ck_ezwich_card_batches_quantity_received_positive")),
        sa.CheckConstraint(
            "quantity_issued >= 0 AND quantity_issued <= quantity_received",
            name=op.f("ck_ezwich_card_batches_quantity_issued_in_range"),
        ),
        sa.CheckConstraint("unit_cost >= 0", name=op.f("ck_ezwich_card_batches_unit_cost_non_negative")),
        sa.CheckConstraint("status IN ('active', 'depleted')", name=op.f("ck_ezwich_card_batches_status_allowed")),
        sa.ForeignKeyConstraint(
            ["branch_id"], ["branches.id"], name=op.f("fk_ezwich_card_batches_branch_id_branches")
        ),
        sa.ForeignKeyConstraint(
            ["payment_float_account_id"],
            ["float_accounts.id"],
            name=op.f("fk_ezwich_card_batches_payment_float_account_id_float_accounts"),
        ),
        sa.ForeignKeyConstraint(
            ["gl_transaction_id"],
            ["gl_transactions.id"],
            name=op.f("fk_ezwich_card_batches_gl_transaction_id_gl_transactions"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ezwich_card_batches")),
        sa.UniqueConstraint("batch_code", name=op.f("uq_ezwich_card_batches_batch_code")),
    )
    op.create_index(op.f("ix_ezwich_card_batches_branch_id"), "ezwich_card_batches", ["branch_id"], unique=False)

    op.create_table(
        "ezwich_card_issuances",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("card_number", sa.String(length=32), nullable=False),
        sa.Column("customer_name", sa.String(length=128), nullable=False),
        sa.Column("customer_phone", sa.String(length=32), nullable=False),
        sa.Column("id_type", sa.String(length=32), nullable=True),
        sa.Column("id_number", sa.String(length=64), nullable=True),
        sa.Column("fee_charged", MONEY, nullable=False),
        sa.Column("float_account_id", sa.Integer(), nullable=True),
        sa.Column("issue_date", sa.Date(), nullable=False),
        sa.Column("expiry_date", sa.Date(), nullable=False),
        sa.Column("issued_by", sa.String(length=64), nullable=False),
        sa.Column("gl_transaction_id", sa.Integer(), nullable=True),
        _timestamp("created_at", index=True),
        sa.CheckConstraint("fee_charged >= 0", name=op.f("ck_ezwich_card_issuances_fee_non_negative")),
        sa.ForeignKeyConstraint(
            ["branch_id"], ["branches.id"], name=op.f("fk_ezwich_card_issuances_branch_id_branches")
        ),
        sa.ForeignKeyConstraint(
            ["batch_id"],
            ["ezwich_card_batches.id"],
            name=op.f("fk_ezwich_card_issuances_batch_id_ezwich_card_batches"),
        ),
        sa.ForeignKeyConstraint(
            ["float_account_id"],
            ["float_accounts.id"],
            name=op.f("fk_ezwich_card_issuances_float_account_id_float_accounts"),
        ),
        sa.ForeignKeyConstraint(
            ["gl_transaction_id"],
            ["gl_transactions.id"],
            name=op.f("fk_ezwich_card_issuances_gl_transaction_id_gl_transactions"),
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_ezwich_card_issuances")),
        sa.UniqueConstraint("card_number", name=op.f("uq_ezwich_card_issuances_card_number")),
    )
    op.create_index(
        op.f("ix_ezwich_card_issuances_branch_id"), "ezwich_card_issuances", ["branch_id"], unique=False
    )
    op.create_index(op.f("ix_ezwich_card_issuances_batch_id"), "ezwich_card_issuances", ["batch_id"], unique=False)

    op.create_table(
        "jumia_packages",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("tracking_id", sa.String(length=64), nullable=False),
        sa.Column("customer_name", sa.String(length=128), nullable=False),
        sa.Column("customer_phone", sa.String(length=32), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("received_by", sa.String(length=64), nullable=False),
        _timestamp("received_at"),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("settled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("settlement_reference", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.String(length=512), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.CheckConstraint(
            "status IN ('received', 'delivered', 'settled')", name=op.f("ck_jumia_packages_status_allowed")
        ),
        sa.ForeignKeyConstraint(["branch_id"], ["branches.id"], name=op.f("fk_jumia_packages_branch_id_branches")),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_jumia_packages")),
        sa.UniqueConstraint("branch_id", "tracking_id", name="uq_jumia_packages_branch_tracking"),
    )
    op.create_index(op.f("ix_jumia_packages_branch_id"), "jumia_packages", ["branch_id"], unique=False)
    op.create_index(op.f("ix_jumia_packages_status"), "jumia_packages", ["status"], unique=False)


def downgrade() -> None:
    for table in ("jumia_packages", "ezwich_card_issuances", "ezwich_card_batches"):
        op.drop_table(table)
