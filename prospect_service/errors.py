"""
HTTP error mapping.

Every error body is {error, details?, type}. `details` is only sent outside
production.
"""

import logging
from typing import Any, Awaitable, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.common.error_handling import ProspectingError, ProviderTransportError
from src.searches.base import SearchOutcome

from .config import get_settings

logger = logging.getLogger(__name__)


async def outcome_or_raise(
    pending: Awaitable[SearchOutcome],
    error_type: str,
    message: str,
) -> Dict[str, Any]:
    """
    Await an orchestrator and return its payload.

    A failed outcome (extraction/repair) and provider transport errors become
    a 500 with the feature's error type (e.g. "brainstorming_error").
    """
    try:
        outcome = await pending
    except ProviderTransportError as e:
        e.error_type = error_type
        raise
    if not outcome.success:
        raise ProspectingError(message, details=outcome.error, error_type=error_type)
    return outcome.payload


def _body(message: str, error_type: str, details: Any = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": message, "type": error_type}
    if details is not None and not get_settings().is_production:
        body["details"] = details
    return body


async def prospecting_error_handler(request: Request, exc: ProspectingError) -> JSONResponse:
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_type}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(include_details=not get_settings().is_production),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} -> 400 validation_error")
    return JSONResponse(
        status_code=400,
        content=_body("Paramètres de recherche invalides", "validation_error", jsonable_encoder(exc.errors())),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content=_body("Erreur interne du serveur", "internal_error", str(exc)),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ProspectingError, prospecting_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
