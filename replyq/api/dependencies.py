"""Process-wide stage services shared by the API routers.

Built lazily on first use; tests swap them with ``set_services``.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass

from replyq.autosend.controller import AutoSendController, AutoSendSession
from replyq.classification.classifier import IntentClassifier
from replyq.classification.extractor import EntityExtractor
from replyq.drafting.drafter import DraftGenerator
from replyq.observability.logging import get_logger
from replyq.observability.telemetry import counter, log_event
from replyq.shared.pipeline import ReplyPipeline
from replyq.suggestions.aggregator import SuggestionAggregator

logger = get_logger(__name__)


@dataclass
class Services:
    classifier: IntentClassifier
    extractor: EntityExtractor
    drafter: DraftGenerator
    aggregator: SuggestionAggregator
    autosend: AutoSendController
    pipeline: ReplyPipeline


def dispatch_send(session: AutoSendSession) -> None:
    """Hand a committed draft to the send collaborator.

    Delivery lives outside this service; the commit is recorded so the
    collaborator can pick it up by ``draft_ref``.
    """
    counter("send.dispatched")
    log_event("send.dispatched", draft_ref=session.draft_ref, context=session.context_id)


def build_services() -> Services:
    classifier = IntentClassifier()
    extractor = EntityExtractor()
    drafter = DraftGenerator()
    aggregator = SuggestionAggregator()
    autosend = AutoSendController(send_action=dispatch_send)
    pipeline = ReplyPipeline(classifier, extractor, drafter, aggregator, autosend)
    return Services(classifier, extractor, drafter, aggregator, autosend, pipeline)


_services: Services | None = None
_services_lock = threading.Lock()


def get_services() -> Services:
    global _services
    if _services is None:
        with _services_lock:
            if _services is None:
                _services = build_services()
                logger.info("Stage services initialized")
    return _services


def set_services(services: Services | None) -> None:
    """Replace the shared services (None rebuilds defaults on next use)."""
    global _services
    with _services_lock:
        _services = services
