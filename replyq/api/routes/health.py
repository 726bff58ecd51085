"""Health check endpoint.

- /health - Service health including LLM credential presence and feature flags
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter

from replyq.config import APP_VERSION, autosend_adaptive, use_llm

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Service status, version, and Vertex AI credential readiness.

    Only checks that credentials are configured; no model call is made.
    """
    has_project = bool(os.getenv("GOOGLE_CLOUD_PROJECT"))

    return {
        "status": "healthy",
        "service": "ReplyQ API",
        "version": APP_VERSION,
        "timestamp": datetime.now(UTC).isoformat(),
        "llm": {
            "enabled": use_llm(),
            "ready": has_project,
            "google_cloud_project": has_project,
        },
        "autosend": {"adaptive_threshold": autosend_adaptive()},
    }
