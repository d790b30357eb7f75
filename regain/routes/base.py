"""
Route class that renders every outcome as a JSON status envelope.
"""

from __future__ import annotations

import logging
from typing import Callable

from fastapi import HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from regain.errors import RegainError

logger = logging.getLogger(__name__)


def describe_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part != "body"]
    message = first.get("msg", "Invalid value")
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


class EnvelopeRoute(APIRoute):
    """
    Catch failures inside a handler and answer ``{"status", "message"}``.

    Business-rule rejections become ``failed``; anything unexpected is
    logged and becomes ``error``.
    """

    def get_route_handler(self) -> Callable:
        original_route_handler = super().get_route_handler()

        async def envelope_route_handler(request: Request) -> Response:
            try:
                return await original_route_handler(request)
            except RegainError as exc:
                return JSONResponse({"status": exc.status, "message": str(exc)})
            except RequestValidationError as exc:
                return JSONResponse(
                    {"status": "failed", "message": describe_validation_error(exc)}
                )
            except HTTPException:
                raise
            except Exception as exc:
                logger.exception(
                    "Unhandled error in %s %s", request.method, request.url.path
                )
                return JSONResponse({"status": "error", "message": str(exc)})

        return envelope_route_handler
