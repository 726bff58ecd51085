"""Full pipeline endpoint: classify + extract, draft, suggest, auto-send decision."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from replyq.api.dependencies import Services, get_services
from replyq.api.models import ProcessRequest, ProcessResponse
from replyq.api.routes.draft import to_draft_response

router = APIRouter(prefix="/api", tags=["pipeline"])


@router.post("/process", response_model=ProcessResponse)
def process(request: ProcessRequest, services: Services = Depends(get_services)) -> ProcessResponse:
    result = services.pipeline.process(
        request.text,
        context=request.context,
        thread_context=request.thread_context,
        slots=request.slots,
        user_profile=request.user_profile,
        contact_profile=request.contact_profile,
        recipients=request.recipients,
        has_calendar_context=request.has_calendar_context,
        context_id=request.context_id,
        start_autosend=request.auto_send,
    )
    return ProcessResponse(
        classification=result.classification,
        extraction=result.extraction,
        extraction_cached=result.extraction_cached,
        draft=to_draft_response(result.draft),
        suggestions=list(result.suggestions.top),
        ranked=list(result.suggestions.ranked),
        confidence=result.confidence,
        autosend_eligible=result.autosend_eligible,
        autosend=result.autosend.to_dict() if result.autosend else None,
    )
