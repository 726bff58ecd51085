"""
Bounded invocation of external language-model capabilities.

Adapters receive an ``LLMCallFn`` (the Gemini-backed default, or a fake in
tests) and never call it directly: ``invoke_bounded`` runs it on a shared
worker pool and waits at most ``timeout`` seconds, converting every failure
(timeout included) into ExternalServiceError so the adapter boundary has a
single exception type to turn into a fallback.
"""

from __future__ import annotations

import concurrent.futures
from typing import Protocol

from replyq.config import LLM_MAX_WORKERS, LLM_TIMEOUT_SECONDS
from replyq.errors import ExternalServiceError
from replyq.observability.logging import get_logger
from replyq.observability.telemetry import counter

logger = get_logger(__name__)

# Shared pool; a timed-out call keeps its worker until the SDK call returns
# but the caller is released immediately.
_EXECUTOR = concurrent.futures.ThreadPoolExecutor(
    max_workers=LLM_MAX_WORKERS, thread_name_prefix="replyq-llm"
)


class LLMCallFn(Protocol):
    def __call__(
        self,
        prompt: str,
        *,
        system_instruction: str | None = None,
        json_output: bool = False,
        temperature: float | None = None,
        counter_prefix: str = "llm",
    ) -> str: ...


def gemini_call(
    prompt: str,
    *,
    system_instruction: str | None = None,
    json_output: bool = False,
    temperature: float | None = None,
    counter_prefix: str = "llm",
) -> str:
    """Default LLMCallFn backed by Vertex AI Gemini."""
    from replyq.llm.retry import call_llm

    return call_llm(
        prompt,
        counter_prefix=counter_prefix,
        system_instruction=system_instruction,
        json_output=json_output,
        temperature=temperature,
    )


def invoke_bounded(
    fn: LLMCallFn,
    prompt: str,
    *,
    stage: str,
    timeout: float = LLM_TIMEOUT_SECONDS,
    system_instruction: str | None = None,
    json_output: bool = False,
    temperature: float | None = None,
) -> str:
    """Call ``fn`` with a hard timeout.

    Raises:
        ExternalServiceError: On timeout, any exception from ``fn``, or an empty response.
    """
    future = _EXECUTOR.submit(
        fn,
        prompt,
        system_instruction=system_instruction,
        json_output=json_output,
        temperature=temperature,
        counter_prefix=stage,
    )
    try:
        text = future.result(timeout=timeout)
    except concurrent.futures.TimeoutError as e:
        future.cancel()
        counter(f"{stage}.external.timeout")
        raise ExternalServiceError(f"{stage} call timed out after {timeout}s") from e
    except ExternalServiceError:
        counter(f"{stage}.external.error")
        raise
    except Exception as e:
        counter(f"{stage}.external.error")
        status_code = getattr(e, "code", None) if isinstance(getattr(e, "code", None), int) else None
        raise ExternalServiceError(f"{stage} call failed: {type(e).__name__}: {e}", status_code) from e

    if not isinstance(text, str) or not text.strip():
        counter(f"{stage}.external.empty")
        raise ExternalServiceError(f"{stage} call returned an empty response")
    return text
