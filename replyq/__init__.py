"""ReplyQ - request classification and confidence-gated drafting"""

from __future__ import annotations

__version__ = "0.1.0"


def __getattr__(name: str):
    """
    Lazy imports so lightweight modules load without the LLM/pydantic stack.
    """
    if name == "ReplyPipeline":
        from replyq.shared.pipeline import ReplyPipeline

        return ReplyPipeline
    if name == "HeuristicClassifier":
        from replyq.classification.heuristic import HeuristicClassifier

        return HeuristicClassifier
    if name == "AutoSendController":
        from replyq.autosend.controller import AutoSendController

        return AutoSendController
    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)


__all__ = ["AutoSendController", "HeuristicClassifier", "ReplyPipeline"]
