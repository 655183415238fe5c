import logging
from typing import Awaitable, Callable

from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from .domain.errors import TransientStoreError
from .infrastructure.repositories import TRANSIENT_ERRORS
from .routers import admin, availability, reservations
from .utils.request_id import accept_request_id, get_request_id, set_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
RETRY_AFTER_SECONDS = "2"


async def request_id_middleware(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    request_id = accept_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        set_request_id(None)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def store_unavailable_handler(request: Request, exc: Exception) -> JSONResponse:
    # Distinct from "fully booked": callers must not read this as no availability.
    logger.warning(
        "storage unavailable on %s %s (request_id=%s): %s",
        request.method,
        request.url.path,
        get_request_id(),
        exc,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": {"code": "store_unavailable", "message": "storage temporarily unavailable"}},
        headers={"Retry-After": RETRY_AFTER_SECONDS},
    )


app = FastAPI(title="Table Reservation API")
app.middleware("http")(request_id_middleware)
app.add_exception_handler(TransientStoreError, store_unavailable_handler)
for _error in TRANSIENT_ERRORS:
    app.add_exception_handler(_error, store_unavailable_handler)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(availability.router)
app.include_router(reservations.router)
app.include_router(admin.router)
