"""
Exception handlers translating the error taxonomy into HTTP responses.

Body shape: {"error", "kind", "message", "details"?, "errors"?}
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from blobgate.domain.errors import BlobgateError

logger = logging.getLogger(__name__)

STATUS_BY_KIND: dict[str, int] = {
    "validation": status.HTTP_400_BAD_REQUEST,
    "not_found": status.HTTP_404_NOT_FOUND,
    "config": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "crypto": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "persistence": status.HTTP_500_INTERNAL_SERVER_ERROR,
    "storage": status.HTTP_502_BAD_GATEWAY,
    "payment_gateway": status.HTTP_502_BAD_GATEWAY,
    # A timed out verification is "no grant"
    "payment_timeout": status.HTTP_402_PAYMENT_REQUIRED,
}


def error_response(exc: BlobgateError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    body = {"error": exc.message, **exc.to_dict()}
    return JSONResponse(status_code=status_code, content=body)


async def blobgate_error_handler(request: Request, exc: BlobgateError) -> JSONResponse:
    if exc.kind in ("validation", "not_found"):
        logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.kind, exc.message)
    else:
        logger.error(
            "%s %s -> %s: %s (%s)",
            request.method,
            request.url.path,
            exc.kind,
            exc.message,
            exc.detail,
        )
    return error_response(exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BlobgateError, blobgate_error_handler)  # type: ignore[arg-type]
