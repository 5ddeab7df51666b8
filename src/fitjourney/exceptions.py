"""Domain errors raised by the gamification services.

Services raise these; ``middleware.error_handler`` turns them into JSON
responses with the matching HTTP status and a machine-readable ``code``.
"""

from __future__ import annotations


class GamificationError(ValueError):
    """Base class for business-rule violations (HTTP 400)."""

    status_code = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class NotFoundError(GamificationError):
    status_code = 404
    code = "NOT_FOUND"


class ForbiddenError(GamificationError):
    status_code = 403
    code = "FORBIDDEN"


class InsufficientCoinsError(GamificationError):
    code = "INSUFFICIENT_COINS"


class OutOfStockError(GamificationError):
    code = "OUT_OF_STOCK"


class RewardInactiveError(GamificationError):
    code = "INACTIVE"


class AlreadyOwnedError(GamificationError):
    code = "ALREADY_OWNED"


class AlreadyClaimedError(GamificationError):
    code = "ALREADY_CLAIMED"


class QuestNotCompletedError(GamificationError):
    code = "NOT_COMPLETED"


class ExpiredError(GamificationError):
    code = "EXPIRED"


class DailyLimitReachedError(GamificationError):
    code = "DAILY_LIMIT_REACHED"
