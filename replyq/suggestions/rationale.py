"""Human-readable "why this" strings for action suggestions."""

from __future__ import annotations

from collections.abc import Callable, Sequence

_RationaleRule = Callable[[bool, bool, Sequence[str]], str]


def _reply(has_questions: bool, _time: bool, _recipients: Sequence[str]) -> str:
    if has_questions:
        return "Detected direct questions; a quick reply reduces back-and-forth."
    return "A timely response keeps momentum and clarity."


def _schedule(_questions: bool, has_time_references: bool, _recipients: Sequence[str]) -> str:
    if has_time_references:
        return "Found time cues; proposing slots removes friction."
    return "Suggesting times speeds up scheduling."


def _auto_send(_questions: bool, _time: bool, recipients: Sequence[str]) -> str:
    if recipients:
        return "High confidence with known recipient; safe to send without review."
    return "High confidence; auto-send available with quick cancel."


RATIONALE_RULES: dict[str, _RationaleRule] = {
    "reply": _reply,
    "schedule": _schedule,
    "add_calendar": lambda *_: "Timing signals present; adding an event prevents misses.",
    "save_template": lambda *_: "Message pattern repeats; saving as a template speeds future replies.",
    "auto_send": _auto_send,
    "translate": lambda *_: "Recipient language differs; translating maximizes clarity and respect.",
    "summarize": lambda *_: "Long thread detected; summary highlights key asks and next steps.",
}

DEFAULT_RATIONALE = "Context suggests this action will reduce effort and improve clarity."


def build_rationale(
    kind: str,
    *,
    has_questions: bool = False,
    has_time_references: bool = False,
    recipients: Sequence[str] = (),
) -> str:
    """Rationale for a suggestion kind; unknown kinds (handoffs) get the generic line."""
    rule = RATIONALE_RULES.get(kind)
    if rule is None:
        return DEFAULT_RATIONALE
    return rule(has_questions, has_time_references, recipients)
