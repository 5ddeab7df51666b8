"""Pydantic models for coin balance, ledger and stats endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class CoinBalanceResponse(BaseModel):
    balance: int
    total_earned: int


class CoinTransactionResponse(BaseModel):
    id: int
    amount: int
    type: str
    reason: str
    metadata: dict = {}
    created_at: datetime


class CoinHistoryResponse(BaseModel):
    transactions: list[CoinTransactionResponse]
    total: int
    has_more: bool
    limit: int
    offset: int


class CoinStatsResponse(BaseModel):
    period: str
    earned: int
    spent: int
    refunded: int
    net: int
    current_balance: int
    transaction_count: int
