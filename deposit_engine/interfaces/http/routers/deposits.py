"""Deposit intent and transaction endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from deposit_engine.core.config import Settings
from deposit_engine.interfaces.http.deps import get_app_settings, get_db_session
from deposit_engine.modules.deposits import DepositService
from deposit_engine.modules.intents import IntentError, IntentService
from deposit_engine.schemas import (
    DepositIntentCreate,
    DepositIntentCreateResponse,
    DepositIntentListResponse,
    DepositIntentResponse,
    DepositTransactionListResponse,
    DepositTransactionResponse,
)

router = APIRouter()


@router.post(
    "/intents",
    response_model=DepositIntentCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create or reuse a deposit intent",
)
async def create_intent(
    payload: DepositIntentCreate,
    db: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
):
    service = IntentService.with_session(db, settings.reconciler.intent_ttl_hours)
    try:
        intent, created = await service.create_intent(payload.user_id, payload.network, payload.amount)
    except IntentError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return DepositIntentCreateResponse(intent=DepositIntentResponse.model_validate(intent), created=created)


@router.get("/intents/{user_id}", response_model=DepositIntentListResponse, summary="List a user's deposit intents")
async def list_intents(
    user_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
):
    intents = await IntentService.with_session(db).list_for_user(user_id, limit=limit, offset=skip)
    return DepositIntentListResponse(
        total=len(intents),
        intents=[DepositIntentResponse.model_validate(intent) for intent in intents],
    )


@router.get(
    "/transactions/{user_id}",
    response_model=DepositTransactionListResponse,
    summary="List a user's deposit transactions",
)
async def list_transactions(
    user_id: str,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db_session),
):
    transactions = await DepositService.with_session(db).list_for_user(user_id, limit=limit, offset=skip)
    return DepositTransactionListResponse(
        total=len(transactions),
        transactions=[DepositTransactionResponse.model_validate(tx) for tx in transactions],
    )
