"""Action suggestion endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from replyq.api.dependencies import Services, get_services
from replyq.api.models import SuggestionsRequest, SuggestionsResponse
from replyq.classification.normalizer import normalize_text

router = APIRouter(prefix="/api", tags=["suggestions"])


@router.post("/suggestions", response_model=SuggestionsResponse)
def suggestions(
    request: SuggestionsRequest, services: Services = Depends(get_services)
) -> SuggestionsResponse:
    """Rank next actions. ``suggestions`` is the top-N view, ``ranked`` the full list."""
    result = services.aggregator.aggregate(
        normalize_text(request.text),
        request.intent,
        request.confidence,
        extraction=request.extraction,
        recipients=request.recipients,
        has_calendar_context=request.has_calendar_context,
        autosend_threshold=services.autosend.current_threshold(),
    )
    return SuggestionsResponse(
        suggestions=list(result.top),
        ranked=list(result.ranked),
        primary=result.primary,
    )
