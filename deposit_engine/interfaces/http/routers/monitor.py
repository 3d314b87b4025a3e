"""Operational endpoints: engine status, unmatched deposits and manual cycles."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from deposit_engine.interfaces.http.deps import get_db_session, get_reconciler
from deposit_engine.modules.deposits import DepositService
from deposit_engine.modules.reconciler import DepositReconciler
from deposit_engine.modules.wallets import CheckpointStore, MainWalletService
from deposit_engine.schemas import (
    CheckpointResponse,
    CycleReportResponse,
    DepositTransactionListResponse,
    DepositTransactionResponse,
    MonitorStatusResponse,
)

router = APIRouter()


@router.get("/status", response_model=MonitorStatusResponse, summary="Checkpoints and deposit counters")
async def monitor_status(db: AsyncSession = Depends(get_db_session)):
    deposits = DepositService.with_session(db)
    checkpoints = await CheckpointStore.with_session(db).list_checkpoints()
    wallets = await MainWalletService.with_session(db).active_by_network()
    return MonitorStatusResponse(
        networks=sorted(wallets),
        checkpoints=[CheckpointResponse.model_validate(checkpoint) for checkpoint in checkpoints],
        transactions_by_status=await deposits.count_by_status(),
        unmatched_confirmed=await deposits.count_unmatched_confirmed(),
    )


@router.get(
    "/unmatched",
    response_model=DepositTransactionListResponse,
    summary="Confirmed deposits waiting for manual review",
)
async def unmatched_deposits(
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db_session),
):
    transactions = await DepositService.with_session(db).list_unmatched_confirmed(limit)
    return DepositTransactionListResponse(
        total=len(transactions),
        transactions=[DepositTransactionResponse.model_validate(tx) for tx in transactions],
    )


@router.post("/cycle", response_model=CycleReportResponse, summary="Run one reconciliation cycle now")
async def run_cycle(reconciler: DepositReconciler = Depends(get_reconciler)):
    report = await reconciler.process_cycle()
    return CycleReportResponse.from_report(report)
