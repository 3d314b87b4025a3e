"""SQLAlchemy ORM models."""
import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
)

from deposit_engine.infrastructure.database.base import Base

# token amounts are stored at 6 decimal places; finer digits are cut at ingest
AMOUNT_SCALE = 6
AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_SCALE)
AMOUNT = Numeric(20, AMOUNT_SCALE)


def generate_uuid() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MainWallet(Base):
    __tablename__ = "main_wallets"
    __table_args__ = (UniqueConstraint("network", "address", name="uq_main_wallets_network_address"),)

    id = Column(String(36), primary_key=True, default=generate_uuid)
    network = Column(String(20), nullable=False, index=True)
    address = Column(String(64), nullable=False)
    token_contract_address = Column(String(64), nullable=False)
    min_confirmations = Column(Integer, nullable=False, default=12)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)


class BlockCheckpoint(Base):
    __tablename__ = "block_checkpoints"

    network = Column(String(20), primary_key=True)
    last_processed_block = Column(BigInteger, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class DepositIntent(Base):
    __tablename__ = "deposit_intents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    network = Column(String(20), nullable=False, index=True)
    expected_amount = Column(AMOUNT, nullable=False)
    reference_code = Column(String(32), nullable=False, unique=True)
    main_wallet_address = Column(String(64))
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, detected, credited, expired
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)


class DepositTransaction(Base):
    __tablename__ = "deposit_transactions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    tx_hash = Column(String(100), nullable=False, unique=True)
    from_address = Column(String(64))
    to_address = Column(String(64), nullable=False)
    amount = Column(AMOUNT, nullable=False)
    network = Column(String(20), nullable=False, index=True)
    block_number = Column(BigInteger, nullable=False)
    block_hash = Column(String(100))
    confirmations = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, confirmed, credited
    user_id = Column(String(36), nullable=True, index=True)
    deposit_intent_id = Column(String(36), ForeignKey("deposit_intents.id"), nullable=True, unique=True)
    reference_code = Column(String(32))
    raw_payload = Column(JSON)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)
    confirmed_at = Column(DateTime(timezone=True))
    credited_at = Column(DateTime(timezone=True))


class UserBalance(Base):
    __tablename__ = "user_balances"

    user_id = Column(String(36), primary_key=True)
    available_balance = Column(AMOUNT, nullable=False, default=0)
    currency = Column(String(10), nullable=False, default="USDT")
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), onupdate=utcnow)


class TransactionLog(Base):
    __tablename__ = "transaction_log"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String(36), nullable=False, index=True)
    type = Column(String(20), nullable=False, default="deposit")
    amount = Column(AMOUNT, nullable=False)
    status = Column(String(20), nullable=False, default="completed")
    description = Column(String(255))
    reference = Column(String(100), index=True)
    meta = Column(JSON)
    created_at = Column(DateTime(timezone=True), default=utcnow)
