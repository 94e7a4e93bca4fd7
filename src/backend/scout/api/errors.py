"""Map service exceptions onto HTTP errors."""

from fastapi import HTTPException, status

from scout.core.exceptions import (
    AIDisabledError,
    LLMResponseError,
    NotFoundError,
    OutOfBudgetError,
    SchemaError,
)

SERVICE_ERRORS = (
    NotFoundError,
    AIDisabledError,
    OutOfBudgetError,
    LLMResponseError,
    ValueError,
)


def to_http_error(exc: Exception) -> HTTPException:
    # SchemaError subclasses ValueError, so it must be checked first
    if isinstance(exc, SchemaError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, OutOfBudgetError):
        return HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(exc))
    if isinstance(exc, LLMResponseError):
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=f"LLM {exc.kind} error: {exc}")
    if isinstance(exc, AIDisabledError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


def conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
