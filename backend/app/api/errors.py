"""
Translation of application errors to HTTP responses.
"""

from fastapi import HTTPException, status

from app.core.exceptions import (
    BusinessLogicError,
    ConcurrencyConflictError,
    NotFoundError,
    SchedulerAppError,
    ValidationError,
)


def to_http_exception(error: SchedulerAppError) -> HTTPException:
    """
    Map an application error to the HTTPException raised by the router.

    The detail carries the message plus the error's structured details
    (conflicting intervals, retryable flag, unplaced minutes).
    """
    if isinstance(error, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(error, ConcurrencyConflictError):
        status_code = status.HTTP_409_CONFLICT
    elif isinstance(error, ValidationError):
        status_code = status.HTTP_400_BAD_REQUEST
    elif isinstance(error, BusinessLogicError):
        # SchedulingFailureError, InvalidPlacementError
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    detail = {"message": error.message}
    if isinstance(error.details, dict):
        detail.update(error.details)
    return HTTPException(status_code=status_code, detail=detail)
