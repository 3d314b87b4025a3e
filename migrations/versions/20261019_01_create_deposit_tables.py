"""create deposit reconciliation tables

Revision ID: 3f9c1d2e7a40
Revises: 
Create Date: 2026-10-19 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "3f9c1d2e7a40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "main_wallets",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("network", sa.String(length=20), nullable=False),
        sa.Column("address", sa.String(length=64), nullable=False),
        sa.Column("token_contract_address", sa.String(length=64), nullable=False),
        sa.Column("min_confirmations", sa.Integer(), nullable=False, server_default="12"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("network", "address", name="uq_main_wallets_network_address"),
    )
    op.create_index("ix_main_wallets_network", "main_wallets", ["network"])

    op.create_table(
        "block_checkpoints",
        sa.Column("network", sa.String(length=20), primary_key=True),
        sa.Column("last_processed_block", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    op.create_table(
        "deposit_intents",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("network", sa.String(length=20), nullable=False),
        sa.Column("expected_amount", sa.Numeric(20, 6), nullable=False),
        sa.Column("reference_code", sa.String(length=32), nullable=False, unique=True),
        sa.Column("main_wallet_address", sa.String(length=64)),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_deposit_intents_user_id", "deposit_intents", ["user_id"])
    op.create_index("ix_deposit_intents_network", "deposit_intents", ["network"])
    op.create_index("ix_deposit_intents_status", "deposit_intents", ["status"])
    op.create_index("ix_deposit_intents_created_at", "deposit_intents", ["created_at"])

    op.create_table(
        "deposit_transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("tx_hash", sa.String(length=100), nullable=False, unique=True),
        sa.Column("from_address", sa.String(length=64)),
        sa.Column("to_address", sa.String(length=64), nullable=False),
        sa.Column("amount", sa.Numeric(20, 6), nullable=False),
        sa.Column("network", sa.String(length=20), nullable=False),
        sa.Column("block_number", sa.BigInteger(), nullable=False),
        sa.Column("block_hash", sa.String(length=100)),
        sa.Column("confirmations", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("user_id", sa.String(length=36)),
        sa.Column(
            "deposit_intent_id",
            sa.String(length=36),
            sa.ForeignKey("deposit_intents.id"),
            unique=True,
        ),
        sa.Column("reference_code", sa.String(length=32)),
        sa.Column("raw_payload", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.Column("confirmed_at", sa.DateTime(timezone=True)),
        sa.Column("credited_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_deposit_transactions_network", "deposit_transactions", ["network"])
    op.create_index("ix_deposit_transactions_status", "deposit_transactions", ["status"])
    op.create_index("ix_deposit_transactions_user_id", "deposit_transactions", ["user_id"])
    op.create_index("ix_deposit_transactions_created_at", "deposit_transactions", ["created_at"])

    op.create_table(
        "user_balances",
        sa.Column("user_id", sa.String(length=36), primary_key=True),
        sa.Column("available_balance", sa.Numeric(20, 6), nullable=False, server_default="0"),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="USDT"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )

    op.create_table(
        "transaction_log",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="deposit"),
        sa.Column("amount", sa.Numeric(20, 6), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="completed"),
        sa.Column("description", sa.String(length=255)),
        sa.Column("reference", sa.String(length=100)),
        sa.Column("meta", sa.JSON()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_transaction_log_user_id", "transaction_log", ["user_id"])
    op.create_index("ix_transaction_log_reference", "transaction_log", ["reference"])


def downgrade() -> None:
    op.drop_index("ix_transaction_log_reference", table_name="transaction_log")
    op.drop_index("ix_transaction_log_user_id", table_name="transaction_log")
    op.drop_table("transaction_log")
    op.drop_table("user_balances")
    op.drop_index("ix_deposit_transactions_created_at", table_name="deposit_transactions")
    op.drop_index("ix_deposit_transactions_user_id", table_name="deposit_transactions")
    op.drop_index("ix_deposit_transactions_status", table_name="deposit_transactions")
    op.drop_index("ix_deposit_transactions_network", table_name="deposit_transactions")
    op.drop_table("deposit_transactions")
    op.drop_index("ix_deposit_intents_created_at", table_name="deposit_intents")
    op.drop_index("ix_deposit_intents_status", table_name="deposit_intents")
    op.drop_index("ix_deposit_intents_network", table_name="deposit_intents")
    op.drop_index("ix_deposit_intents_user_id", table_name="deposit_intents")
    op.drop_table("deposit_intents")
    op.drop_table("block_checkpoints")
    op.drop_index("ix_main_wallets_network", table_name="main_wallets")
    op.drop_table("main_wallets")
