"""Intent classification endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from replyq.api.dependencies import Services, get_services
from replyq.api.models import ClassifyRequest
from replyq.classification.normalizer import normalize_text
from replyq.contracts.models import ClassificationResult

router = APIRouter(prefix="/api", tags=["classification"])


@router.post("/classify", response_model=ClassificationResult)
def classify(
    request: ClassifyRequest, services: Services = Depends(get_services)
) -> ClassificationResult:
    """Classify the request's intent; falls back to keyword heuristics when the model is unavailable."""
    return services.classifier.classify(normalize_text(request.text), request.context)
