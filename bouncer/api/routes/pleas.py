"""
Plea API Routes

POST /api/submit-plea - Check a visitor against the guest list and notify
POST /api/pleas       - Same handler, resource-style path
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from bouncer.core.errors import EventExpiredError, PleaError, PleaValidationError
from bouncer.models.guest import ErrorResponse, ExpiredResponse, PleaRequest, PleaResponse
from bouncer.services.plea_orchestrator import PleaOrchestrator, get_plea_orchestrator

logger = logging.getLogger(__name__)
router = APIRouter(tags=["pleas"])

INTERNAL_ERROR = "Internal Server Error"
INVALID_BODY = "Invalid request body"


async def read_plea_body(request: Request) -> PleaRequest:
    """Parse the JSON body; anything unreadable or not an object is a 400."""
    try:
        return PleaRequest.model_validate(await request.json())
    except ValueError as e:
        # json.JSONDecodeError, UnicodeDecodeError and pydantic.ValidationError
        logger.info(f"[plea] Rejected malformed request body on {request.url.path}: {type(e).__name__}")
        raise PleaValidationError(INVALID_BODY) from e


@router.post(
    "/submit-plea",
    response_model=PleaResponse,
    responses={
        400: {"model": ErrorResponse},
        410: {"model": ExpiredResponse},
        500: {"model": ErrorResponse},
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": PleaRequest.model_json_schema()}},
        }
    },
)
@router.post("/pleas", response_model=PleaResponse, include_in_schema=False)
async def submit_plea(
    request: Request,
    orchestrator: PleaOrchestrator = Depends(get_plea_orchestrator),
):
    # Expiry is decided before the body is read, so any body gets 410 after the cutoff.
    try:
        orchestrator.check_expiry()
        body = await read_plea_body(request)
        outcome = await orchestrator.handle(body)
    except EventExpiredError as e:
        return JSONResponse(
            status_code=e.status_code,
            content=ExpiredResponse(error=e.message).model_dump(),
        )
    except PleaError as e:
        if e.status_code >= 500:
            logger.error(f"[plea] Error processing plea: {e.message}")
            message = INTERNAL_ERROR
        else:
            message = e.message
        return JSONResponse(status_code=e.status_code, content={"error": message})
    except Exception:
        logger.exception("[plea] Error processing plea")
        return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR})

    return PleaResponse(success=True, matched=outcome.matched)
