from __future__ import annotations

import logging

from fastapi import HTTPException

from app.core.errors import (
    ConflictingOpenPeriod,
    DomainError,
    InvariantViolation,
    NotFound,
    PeriodClosed,
    ValidationFailed,
)
from services.periods.status import PeriodTransitionError

logger = logging.getLogger(__name__)

_STATUS = {
    NotFound: 404,
    ValidationFailed: 400,
    ConflictingOpenPeriod: 409,
    PeriodClosed: 409,
    InvariantViolation: 500,
}


def http_error(e: Exception) -> HTTPException:
    """Translate a service error into the HTTPException a router raises."""
    if isinstance(e, PeriodTransitionError):
        return HTTPException(400, {"error": "INVALID_TRANSITION", "message": str(e)})
    if isinstance(e, DomainError):
        status = next((s for cls, s in _STATUS.items() if isinstance(e, cls)), 400)
        detail = {"error": e.code, "message": e.message}
        if isinstance(e, ConflictingOpenPeriod) and e.open_period_id:
            detail["open_period_id"] = e.open_period_id
        if status >= 500:
            detail["message"] = "Internal consistency error"
        return HTTPException(status, detail)
    logger.exception("unhandled error reached the router")
    return HTTPException(500, "Internal error")
