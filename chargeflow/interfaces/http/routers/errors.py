"""Translation of domain errors to HTTP responses."""

from fastapi import HTTPException, status

from chargeflow.domain.charges.exceptions import (
    ChargeError,
    InvalidAmount,
    InvalidState,
    NotFound,
    UnsupportedMethod,
)


def http_error(exc: ChargeError) -> HTTPException:
    if isinstance(exc, NotFound):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, InvalidState):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, (InvalidAmount, UnsupportedMethod)):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return HTTPException(status_code=code, detail=str(exc))
