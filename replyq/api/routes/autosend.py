"""
Auto-send endpoints.

Start and cancel are idempotent: starting while a countdown is running
returns it unchanged; cancelling anything that is not counting is a no-op.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from replyq.api.dependencies import Services, get_services
from replyq.api.models import AutoSendContextRequest, AutoSendResponse, AutoSendStartRequest
from replyq.autosend.controller import AutoSendState
from replyq.errors import ValidationError
from replyq.observability.logging import get_logger

router = APIRouter(prefix="/api/autosend", tags=["autosend"])
logger = get_logger(__name__)


def _state_response(services: Services, context_id: str) -> AutoSendResponse:
    session = services.autosend.get(context_id)
    return AutoSendResponse(
        state=services.autosend.state(context_id).value,
        session=session.to_dict() if session else None,
        threshold=services.autosend.current_threshold(),
    )


@router.post("/start", response_model=AutoSendResponse)
def start(
    request: AutoSendStartRequest, services: Services = Depends(get_services)
) -> AutoSendResponse:
    """Start a countdown; ``state`` stays ``idle`` when the confidence gate rejects it."""
    services.autosend.start(
        request.context_id, request.draft_ref, request.confidence, request.text
    )
    return _state_response(services, request.context_id)


@router.post("/cancel", response_model=AutoSendResponse)
def cancel(
    request: AutoSendContextRequest, services: Services = Depends(get_services)
) -> AutoSendResponse:
    services.autosend.cancel(request.context_id)
    return _state_response(services, request.context_id)


@router.post("/feedback")
def feedback(
    request: AutoSendContextRequest, services: Services = Depends(get_services)
) -> dict[str, Any]:
    """Mark a committed auto-send as regretted; tightens the learned threshold."""
    if services.autosend.state(request.context_id) is not AutoSendState.COMMITTED:
        raise ValidationError("No committed auto-send for this context", field="context_id")
    services.autosend.metrics.mark_regretted()
    logger.info("Auto-send marked regretted")
    return services.autosend.metrics.summary()


@router.get("/metrics/summary")
def metrics_summary(services: Services = Depends(get_services)) -> dict[str, Any]:
    return services.autosend.metrics.summary()


@router.get("/{context_id}", response_model=AutoSendResponse)
def get_session(context_id: str, services: Services = Depends(get_services)) -> AutoSendResponse:
    return _state_response(services, context_id)
