"""
服务异常到 HTTP 错误的映射
"""
from fastapi import HTTPException

from editorial_gate.services.errors import (
    InvalidTransitionError,
    NotFoundError,
    PendingRevisionError,
    RevisionGenerationError,
    RevisionInFlightError,
)


def to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, HTTPException):
        return e
    if isinstance(e, NotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, (RevisionInFlightError, PendingRevisionError, InvalidTransitionError)):
        return HTTPException(status_code=409, detail=str(e))
    if isinstance(e, RevisionGenerationError):
        return HTTPException(status_code=502, detail=str(e))
    if isinstance(e, ValueError):
        return HTTPException(status_code=400, detail=str(e))
    return HTTPException(status_code=500, detail=str(e))
