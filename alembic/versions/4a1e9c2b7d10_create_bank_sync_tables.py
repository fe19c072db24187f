"""Create connected_banks, bank_accounts, transactions and category_overrides.

Revision ID: 4a1e9c2b7d10
Revises:
Create Date: 2026-10-18
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "4a1e9c2b7d10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    # 1) One row per consent flow. account_id holds the requisition id as a
    #    per-connection placeholder so the same institution can be linked twice.
    op.create_table(
        "connected_banks",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("institution_id", sa.String(length=128), nullable=False),
        sa.Column("bank_name", sa.String(length=255), nullable=True),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("account_id", sa.String(length=255), nullable=False),
        sa.Column("link_id", sa.String(length=255), nullable=False),
        sa.Column("reference", sa.String(length=128), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("country", sa.String(length=2), nullable=True),
        sa.Column("consent_expires_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "account_id", name="uq_connected_banks_user_account"),
    )
    op.create_index("ix_connected_banks_user_id", "connected_banks", ["user_id"])
    op.create_index("ix_connected_banks_user_link", "connected_banks", ["user_id", "link_id"])
    op.create_index("ix_connected_banks_user_reference", "connected_banks", ["user_id", "reference"])

    # 2) Upstream accounts with their sync bookkeeping.
    op.create_table(
        "bank_accounts",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("connected_bank_id", sa.Uuid(), nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("account_id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("iban", sa.String(length=64), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("account_type", sa.String(length=64), nullable=True),
        sa.Column("is_selected", sa.Boolean(), nullable=False),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("next_allowed_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_sync_status", sa.String(length=32), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["connected_bank_id"], ["connected_banks.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "provider", "account_id", name="uq_bank_accounts_user_provider_account"
        ),
    )
    op.create_index("ix_bank_accounts_user_id", "bank_accounts", ["user_id"])
    op.create_index("ix_bank_accounts_connected_bank_id", "bank_accounts", ["connected_bank_id"])

    # 3) Transactions; the unique key is the sync's idempotency key.
    op.create_table(
        "transactions",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("bank_account_id", sa.Uuid(), nullable=False),
        sa.Column("transaction_id", sa.String(length=255), nullable=False),
        sa.Column("txn_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=14, scale=2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("description", sa.String(length=500), nullable=False),
        sa.Column("counterparty", sa.String(length=255), nullable=True),
        sa.Column("merchant_key", sa.String(length=255), nullable=True),
        sa.Column("mcc", sa.String(length=4), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("category_source", sa.String(length=10), nullable=False),
        sa.Column("status", sa.String(length=10), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["bank_account_id"], ["bank_accounts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "user_id", "bank_account_id", "transaction_id", name="uq_transactions_user_account_txn"
        ),
    )
    op.create_index("ix_transactions_user_id", "transactions", ["user_id"])
    op.create_index("ix_transactions_bank_account_id", "transactions", ["bank_account_id"])
    op.create_index("ix_transactions_txn_date", "transactions", ["txn_date"])
    op.create_index("ix_transactions_category", "transactions", ["category"])
    op.create_index("ix_transactions_user_id_merchant_key", "transactions", ["user_id", "merchant_key"])

    # 4) User category rules.
    op.create_table(
        "category_overrides",
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("match_type", sa.String(length=32), nullable=False),
        sa.Column("pattern", sa.String(length=500), nullable=True),
        sa.Column("amount_min", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("amount_max", sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column("currency", sa.String(length=3), nullable=True),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("is_enabled", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_category_overrides_user_id", "category_overrides", ["user_id"])
    op.create_index("ix_category_overrides_user_priority", "category_overrides", ["user_id", "priority"])


def downgrade() -> None:
    op.drop_index("ix_category_overrides_user_priority", table_name="category_overrides")
    op.drop_index("ix_category_overrides_user_id", table_name="category_overrides")
    op.drop_table("category_overrides")

    op.drop_index("ix_transactions_user_id_merchant_key", table_name="transactions")
    op.drop_index("ix_transactions_category", table_name="transactions")
    op.drop_index("ix_transactions_txn_date", table_name="transactions")
    op.drop_index("ix_transactions_bank_account_id", table_name="transactions")
    op.drop_index("ix_transactions_user_id", table_name="transactions")
    op.drop_table("transactions")

    op.drop_index("ix_bank_accounts_connected_bank_id", table_name="bank_accounts")
    op.drop_index("ix_bank_accounts_user_id", table_name="bank_accounts")
    op.drop_table("bank_accounts")

    op.drop_index("ix_connected_banks_user_reference", table_name="connected_banks")
    op.drop_index("ix_connected_banks_user_link", table_name="connected_banks")
    op.drop_index("ix_connected_banks_user_id", table_name="connected_banks")
    op.drop_table("connected_banks")
