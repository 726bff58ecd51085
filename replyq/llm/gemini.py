"""
Gemini Model Manager - shared model instances via Vertex AI.

One default model is cached for the process; per-system-instruction models
are cached separately because system instructions are bound to the model
instance in the Gemini API.
"""

from __future__ import annotations

import os
from functools import lru_cache

from replyq.infrastructure.settings import GEMINI_LOCATION, GEMINI_MODEL, GOOGLE_CLOUD_PROJECT
from replyq.observability.logging import get_logger

logger = get_logger(__name__)


class GeminiInitializationError(RuntimeError):
    """Raised when Gemini model cannot be initialized."""


@lru_cache(maxsize=1)
def _init_vertex() -> None:
    import vertexai

    # Read env vars fresh (settings may have been imported before dotenv loaded)
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    location = os.getenv("GEMINI_LOCATION", "") or GEMINI_LOCATION or "us-central1"
    if not project:
        raise GeminiInitializationError("GOOGLE_CLOUD_PROJECT not set")

    vertexai.init(project=project, location=location)
    logger.info(
        "Initialized Vertex AI: project=%s, location=%s, model=%s",
        project,
        location,
        GEMINI_MODEL,
    )


@lru_cache(maxsize=8)
def get_gemini_model_with_options(system_instruction: str | None = None) -> object:
    """Return a GenerativeModel configured with the given system instruction.

    Raises:
        GeminiInitializationError: If Vertex AI cannot be initialized.
    """
    try:
        _init_vertex()
        from vertexai.generative_models import GenerativeModel
    except GeminiInitializationError:
        raise
    except Exception as e:
        logger.error("Failed to initialize Gemini model: %s", e)
        raise GeminiInitializationError(f"Failed to initialize Gemini: {e}") from e

    if system_instruction is None:
        return GenerativeModel(GEMINI_MODEL)
    return GenerativeModel(GEMINI_MODEL, system_instruction=system_instruction)


def clear_model_cache() -> None:
    """
    Clear cached model instances.

    Useful for testing or when reconfiguration is needed.
    """
    get_gemini_model_with_options.cache_clear()
    _init_vertex.cache_clear()
    logger.info("Cleared Gemini model cache")
