"""Template storage endpoint."""

from __future__ import annotations

from fastapi import APIRouter, status

from replyq.api.models import SaveTemplateRequest
from replyq.storage.templates import Template, save_template

router = APIRouter(prefix="/api", tags=["templates"])


@router.post("/templates", response_model=Template, status_code=status.HTTP_201_CREATED)
def create_template(request: SaveTemplateRequest) -> Template:
    """Save a drafted message as a reusable template.

    400 on invalid name/content, 503 with Retry-After when storage is unreachable.
    """
    return save_template(
        request.name,
        request.content,
        category=request.category,
        intent=request.intent,
        tone=request.tone,
        language=request.language,
    )
