"""Create budget ledger and reconciliation tables.

Revision ID: 001
Revises:
Create Date: 2026-10-16

"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # Create recurring_transactions table
    op.create_table(
        "recurring_transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("frequency", sa.String(20), nullable=False),
        sa.Column("interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("day_of_month", sa.Integer(), nullable=True),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("month_of_year", sa.Integer(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("scope", sa.String(20), nullable=False, server_default="shared"),
        sa.Column("owner_user_id", sa.Uuid(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_recurring_active", "recurring_transactions", ["is_active"])

    # Create recurring_transaction_exceptions table
    op.create_table(
        "recurring_transaction_exceptions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "recurring_transaction_id",
            sa.Uuid(),
            sa.ForeignKey("recurring_transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("original_date", sa.Date(), nullable=False),
        sa.Column("exception_type", sa.String(20), nullable=False),
        sa.Column("modified_amount", sa.Numeric(15, 2), nullable=True),
        sa.Column("modified_description", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "recurring_transaction_id", "original_date", name="uq_recurring_exception_date"
        ),
    )

    # Create transactions table
    op.create_table(
        "transactions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column(
            "recurring_transaction_id",
            sa.Uuid(),
            sa.ForeignKey("recurring_transactions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("recurring_instance_date", sa.Date(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(15, 2), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="USD"),
        sa.Column("description", sa.String(500), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("idx_transactions_date", "transactions", ["date"])
    op.create_index("idx_transactions_account", "transactions", ["account_id", "date"])

    # Create reconciliation_matches table
    op.create_table(
        "reconciliation_matches",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column(
            "imported_transaction_id",
            sa.Uuid(),
            sa.ForeignKey("transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "recurring_transaction_id",
            sa.Uuid(),
            sa.ForeignKey("recurring_transactions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("recurring_instance_date", sa.Date(), nullable=False),
        sa.Column("confidence_score", sa.Numeric(5, 4), nullable=False),
        sa.Column("amount_variance", sa.Numeric(15, 2), nullable=False),
        sa.Column("date_offset_days", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="suggested"),
        sa.Column("source", sa.String(10), nullable=False, server_default="auto"),
        sa.Column("scope", sa.String(20), nullable=False, server_default="shared"),
        sa.Column("owner_user_id", sa.Uuid(), nullable=True),
        sa.Column("created_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at_utc", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "imported_transaction_id",
            "recurring_transaction_id",
            "recurring_instance_date",
            name="uq_recon_match_triple",
        ),
    )
    op.create_index("idx_recon_match_status", "reconciliation_matches", ["status"])
    op.create_index(
        "idx_recon_match_instance",
        "reconciliation_matches",
        ["recurring_transaction_id", "recurring_instance_date"],
    )


def downgrade() -> None:
    op.drop_table("reconciliation_matches")
    op.drop_table("transactions")
    op.drop_table("recurring_transaction_exceptions")
    op.drop_table("recurring_transactions")
