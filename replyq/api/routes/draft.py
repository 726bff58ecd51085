"""Reply drafting endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from replyq.api.dependencies import Services, get_services
from replyq.api.models import DraftMetadata, DraftRequest, DraftResponse
from replyq.classification.normalizer import normalize_text
from replyq.contracts.models import DraftResult

router = APIRouter(prefix="/api", tags=["drafting"])


def to_draft_response(result: DraftResult) -> DraftResponse:
    return DraftResponse(
        primary=result.primary,
        alternatives=list(result.alternatives),
        suggested_actions=list(result.suggested_actions),
        metadata=DraftMetadata(
            intent=result.intent,
            model_used=result.model_used,
            duration_ms=result.duration_ms,
            language=result.language,
            urgency=result.urgency,
            is_fallback=result.is_fallback,
        ),
    )


@router.post("/draft", response_model=DraftResponse)
def draft(request: DraftRequest, services: Services = Depends(get_services)) -> DraftResponse:
    """Draft a primary reply plus up to two alternative tones."""
    result = services.drafter.draft(
        request.intent,
        normalize_text(request.text),
        request.extraction,
        slots=request.slots,
        user_profile=request.user_profile,
        contact_profile=request.contact_profile,
    )
    return to_draft_response(result)
