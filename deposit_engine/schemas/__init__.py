"""Pydantic schemas used by the ops API."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class DepositIntentCreate(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=36)
    network: str = Field(..., min_length=1, max_length=20)
    amount: Decimal = Field(..., gt=0, max_digits=20, decimal_places=6)


class DepositIntentResponse(BaseModel):
    id: str
    user_id: str
    network: str
    expected_amount: Decimal
    reference_code: str
    status: str
    main_wallet_address: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DepositIntentCreateResponse(BaseModel):
    intent: DepositIntentResponse
    created: bool


class DepositIntentListResponse(BaseModel):
    total: int
    intents: list[DepositIntentResponse]


class DepositTransactionResponse(BaseModel):
    id: str
    tx_hash: str
    network: str
    from_address: Optional[str] = None
    to_address: str
    amount: Decimal
    block_number: int
    confirmations: int
    status: str
    user_id: Optional[str] = None
    reference_code: Optional[str] = None
    created_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    credited_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DepositTransactionListResponse(BaseModel):
    total: int
    transactions: list[DepositTransactionResponse]


class CheckpointResponse(BaseModel):
    network: str
    last_processed_block: int
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class MonitorStatusResponse(BaseModel):
    networks: list[str]
    checkpoints: list[CheckpointResponse]
    transactions_by_status: dict[str, int]
    unmatched_confirmed: int


class CycleErrorResponse(BaseModel):
    stage: str
    network: Optional[str] = None
    reference: Optional[str] = None
    message: str


class NetworkReportResponse(BaseModel):
    network: str
    wallets: int
    head_height: Optional[int] = None
    checkpoint_before: Optional[int] = None
    checkpoint_after: Optional[int] = None
    chunks: int
    fetched: int
    ingested: int
    duplicates: int
    matched: int
    errors: list[CycleErrorResponse] = Field(default_factory=list)


class CycleReportResponse(BaseModel):
    ok: bool
    started_at: datetime
    finished_at: Optional[datetime] = None
    networks: dict[str, NetworkReportResponse] = Field(default_factory=dict)
    ingested: int
    matched: int
    scanned: int
    confirmed: int
    credited: int
    unmatched: int
    expired_intents: int
    errors: list[CycleErrorResponse] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: Any) -> "CycleReportResponse":
        return cls.model_validate(report.to_dict())
