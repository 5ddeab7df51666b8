"""Coin balance and ledger endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.auth.dependencies import get_current_user
from fitjourney.coins.ledger_service import (
    STATS_PERIODS,
    TRANSACTION_TYPES,
    get_balance,
    get_coin_stats,
    get_total_earned,
    get_transaction_history,
)
from fitjourney.coins.schemas import (
    CoinBalanceResponse,
    CoinHistoryResponse,
    CoinStatsResponse,
    CoinTransactionResponse,
)
from fitjourney.database import get_session
from fitjourney.db.models import User

router = APIRouter(prefix="/api/v1/users/me/coins", tags=["Coins"])

_TX_TYPE_PATTERN = "^(" + "|".join(TRANSACTION_TYPES) + ")$"
_PERIOD_PATTERN = "^(" + "|".join(STATS_PERIODS) + ")$"


@router.get("", response_model=CoinBalanceResponse)
async def get_my_coins(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Current balance and lifetime earnings."""
    return CoinBalanceResponse(
        balance=await get_balance(db, user.id),
        total_earned=await get_total_earned(db, user.id),
    )


@router.get("/history", response_model=CoinHistoryResponse)
async def get_my_coin_history(
    type: str | None = Query(None, pattern=_TX_TYPE_PATTERN),  # noqa: A002
    start: datetime | None = Query(None),
    end: datetime | None = Query(None),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Coin ledger, newest first, filterable by type and date range."""
    history = await get_transaction_history(db, user.id, type, start, end, limit, offset)
    return CoinHistoryResponse(
        transactions=[
            CoinTransactionResponse(
                id=tx.id,
                amount=tx.amount,
                type=tx.type,
                reason=tx.reason,
                metadata=tx.tx_metadata or {},
                created_at=tx.created_at,
            )
            for tx in history["transactions"]
        ],
        total=history["total"],
        has_more=history["has_more"],
        limit=limit,
        offset=offset,
    )


@router.get("/stats", response_model=CoinStatsResponse)
async def get_my_coin_stats(
    period: str = Query("all", pattern=_PERIOD_PATTERN),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Earned / spent / refunded totals over a period."""
    return CoinStatsResponse(**await get_coin_stats(db, user.id, period))
