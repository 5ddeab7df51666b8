"""Coin ledger: atomic balance changes with an append-only transaction log.

Every balance change is a single conditional UPDATE on ``users.coins`` plus a
``coin_transactions`` row in the same transaction, so the denormalized balance
always equals the ledger sum and never goes negative.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from fitjourney.db.models import CoinTransaction, User
from fitjourney.exceptions import GamificationError, InsufficientCoinsError, NotFoundError
from fitjourney.periods import day_bounds, month_start, week_bounds

logger = logging.getLogger(__name__)

EARNED = "EARNED"
SPENT = "SPENT"
BONUS = "BONUS"
REFUND = "REFUND"
TRANSACTION_TYPES = (EARNED, SPENT, BONUS, REFUND)

STATS_PERIODS = ("daily", "weekly", "monthly", "all")


def _check_amount(amount: int) -> None:
    if amount <= 0:
        msg = "Coin amount must be positive"
        raise GamificationError(msg, code="INVALID_AMOUNT")


def _user_not_found(user_id: int) -> NotFoundError:
    return NotFoundError(f"User {user_id} not found", code="USER_NOT_FOUND")


async def _record(
    db: AsyncSession,
    user_id: int,
    amount: int,
    tx_type: str,
    reason: str,
    metadata: dict[str, Any] | None,
) -> CoinTransaction:
    tx = CoinTransaction(
        user_id=user_id,
        amount=amount,
        type=tx_type,
        reason=reason,
        tx_metadata=metadata or {},
    )
    db.add(tx)
    await db.flush()
    return tx


async def _credit(
    db: AsyncSession,
    redis: object,
    user_id: int,
    amount: int,
    tx_type: str,
    reason: str,
    metadata: dict[str, Any] | None,
) -> int:
    _check_amount(amount)
    result = await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(coins=User.coins + amount)
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount == 0:
        raise _user_not_found(user_id)

    await _record(db, user_id, amount, tx_type, reason, metadata)
    balance = await get_balance(db, user_id)
    logger.info("Credited %d coins to user %d (%s/%s), balance %d", amount, user_id, tx_type, reason, balance)

    if tx_type in (EARNED, BONUS):
        from fitjourney.gamification.trigger_engine import TriggerEngine

        await TriggerEngine(db, redis).check_coin_badges(user_id)

    return balance


async def add_coins(
    db: AsyncSession,
    redis: object,
    user_id: int,
    amount: int,
    reason: str,
    metadata: dict[str, Any] | None = None,
) -> int:
    """Credit earned coins. Returns the new balance."""
    return await _credit(db, redis, user_id, amount, EARNED, reason, metadata)


async def grant_bonus_coins(
    db: AsyncSession,
    redis: object,
    user_id: int,
    amount: int,
    reason: str,
    metadata: dict[str, Any] | None = None,
) -> int:
    """Credit bonus coins (level ups, streak milestones). Returns the new balance."""
    return await _credit(db, redis, user_id, amount, BONUS, reason, metadata)


async def refund_coins(
    db: AsyncSession,
    redis: object,
    user_id: int,
    amount: int,
    reason: str,
    metadata: dict[str, Any] | None = None,
) -> int:
    """Give coins back for a reversed purchase. Returns the new balance."""
    return await _credit(db, redis, user_id, amount, REFUND, reason, metadata)


async def spend_coins(
    db: AsyncSession,
    user_id: int,
    amount: int,
    reason: str,
    metadata: dict[str, Any] | None = None,
) -> int:
    """Debit coins if the balance covers it. Returns the new balance.

    Raises InsufficientCoinsError when the balance is too low.
    """
    _check_amount(amount)
    result = await db.execute(
        update(User)
        .where(User.id == user_id, User.coins >= amount)
        .values(coins=User.coins - amount)
        .execution_options(synchronize_session="evaluate")
    )
    if result.rowcount == 0:
        balance = await db.scalar(select(User.coins).where(User.id == user_id))
        if balance is None:
            raise _user_not_found(user_id)
        msg = f"Insufficient coins: balance {balance}, required {amount}"
        raise InsufficientCoinsError(msg)

    await _record(db, user_id, -amount, SPENT, reason, metadata)
    balance = await get_balance(db, user_id)
    logger.info("Debited %d coins from user %d (%s), balance %d", amount, user_id, reason, balance)
    return balance


async def get_balance(db: AsyncSession, user_id: int) -> int:
    """Current coin balance."""
    balance = await db.scalar(select(User.coins).where(User.id == user_id))
    if balance is None:
        raise _user_not_found(user_id)
    return balance


async def check_balance(db: AsyncSession, user_id: int, required: int | None = None) -> dict:
    """Balance plus whether it covers ``required``."""
    balance = await get_balance(db, user_id)
    if required is None:
        return {"balance": balance, "sufficient": True, "shortfall": 0}
    return {
        "balance": balance,
        "sufficient": balance >= required,
        "shortfall": max(0, required - balance),
    }


async def get_transaction_history(
    db: AsyncSession,
    user_id: int,
    tx_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int = 50,
    offset: int = 0,
) -> dict:
    """Filtered, paginated ledger, newest first."""
    conditions = [CoinTransaction.user_id == user_id]
    if tx_type is not None:
        conditions.append(CoinTransaction.type == tx_type)
    if start is not None:
        conditions.append(CoinTransaction.created_at >= start)
    if end is not None:
        conditions.append(CoinTransaction.created_at <= end)

    total = await db.scalar(select(func.count()).select_from(CoinTransaction).where(*conditions)) or 0
    result = await db.execute(
        select(CoinTransaction)
        .where(*conditions)
        .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id.desc())
        .offset(offset)
        .limit(limit)
    )
    transactions = list(result.scalars())
    return {
        "transactions": transactions,
        "total": total,
        "has_more": offset + len(transactions) < total,
    }


def _period_start(period: str, now: datetime | None = None) -> datetime | None:
    if period == "daily":
        return day_bounds(now)[0]
    if period == "weekly":
        return week_bounds(now)[0]
    if period == "monthly":
        return month_start(now)
    if period == "all":
        return None
    msg = f"Unknown period '{period}'"
    raise GamificationError(msg, code="INVALID_PERIOD")


async def get_coin_stats(
    db: AsyncSession,
    user_id: int,
    period: str = "all",
    now: datetime | None = None,
) -> dict:
    """Earned / spent / refunded totals over a period, plus the current balance."""
    start = _period_start(period, now)
    conditions = [CoinTransaction.user_id == user_id]
    if start is not None:
        conditions.append(CoinTransaction.created_at >= start)

    result = await db.execute(
        select(CoinTransaction.type, func.sum(CoinTransaction.amount), func.count())
        .where(*conditions)
        .group_by(CoinTransaction.type)
    )
    sums: dict[str, int] = {}
    count = 0
    for tx_type, total, n in result.all():
        sums[tx_type] = int(total or 0)
        count += n

    earned = sums.get(EARNED, 0) + sums.get(BONUS, 0)
    spent = abs(sums.get(SPENT, 0))
    refunded = sums.get(REFUND, 0)
    return {
        "period": period,
        "earned": earned,
        "spent": spent,
        "refunded": refunded,
        "net": earned + refunded - spent,
        "current_balance": await get_balance(db, user_id),
        "transaction_count": count,
    }


async def get_total_earned(db: AsyncSession, user_id: int) -> int:
    """Lifetime EARNED + BONUS coins."""
    total = await db.scalar(
        select(func.coalesce(func.sum(CoinTransaction.amount), 0)).where(
            CoinTransaction.user_id == user_id,
            CoinTransaction.type.in_((EARNED, BONUS)),
        )
    )
    return int(total or 0)


async def bulk_coin_operation(db: AsyncSession, redis: object, operations: list[dict]) -> dict:
    """Apply independent add/bonus/spend operations, committing each one.

    A failing operation is rolled back and reported; the rest still apply.
    Each operation is ``{"user_id", "amount", "type": "add"|"bonus"|"spend", "reason"}``.
    """
    success = 0
    errors: list[dict] = []
    for op in operations:
        user_id = op["user_id"]
        op_type = op.get("type", "add")
        reason = op.get("reason", "BULK")
        try:
            if op_type == "add":
                await add_coins(db, redis, user_id, op["amount"], reason, op.get("metadata"))
            elif op_type == "bonus":
                await grant_bonus_coins(db, redis, user_id, op["amount"], reason, op.get("metadata"))
            elif op_type == "spend":
                await spend_coins(db, user_id, op["amount"], reason, op.get("metadata"))
            else:
                msg = f"Unknown operation type '{op_type}'"
                raise GamificationError(msg, code="INVALID_OPERATION")
            await db.commit()
            success += 1
        except GamificationError as e:
            await db.rollback()
            errors.append({"user_id": user_id, "error": e.message, "code": e.code})

    logger.info("Bulk coin operation: %d succeeded, %d failed", success, len(errors))
    return {"success": success, "failed": len(errors), "errors": errors}
