"""Entity extraction endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from replyq.api.dependencies import Services, get_services
from replyq.api.models import ExtractRequest, ExtractResponse

router = APIRouter(prefix="/api", tags=["extraction"])


@router.post("/extract", response_model=ExtractResponse)
def extract(request: ExtractRequest, services: Services = Depends(get_services)) -> ExtractResponse:
    """Extract structured entities; identical text within 60 s is served from cache."""
    extraction, cached = services.extractor.extract_with_status(
        request.text, request.thread_context
    )
    return ExtractResponse(extraction=extraction, cached=cached)
