from fastapi import HTTPException, status

from ..domain.errors import CapacityExceededError, InvalidRequestError


def invalid_request(exc: InvalidRequestError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"code": "invalid_request", "field": exc.field, "message": exc.message},
    )


def capacity_exceeded(exc: CapacityExceededError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"code": "capacity_exceeded", "remaining": exc.remaining},
    )


def audit_failed() -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="failed to record audit log")
