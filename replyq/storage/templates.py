"""
Template Repository - saved drafts reused as reply templates.

Persistence is the one stage with no safe local fallback: when the database
is missing or unreachable the caller gets StorageUnavailableError (503 over
HTTP) with a retry hint instead of a silent drop.
"""

from __future__ import annotations

import sqlite3
from datetime import UTC, datetime

from pydantic import BaseModel

from replyq.config import STORAGE_RETRY_AFTER_SECONDS, TEMPLATE_MIN_CONTENT_CHARS
from replyq.errors import StorageUnavailableError, ValidationError
from replyq.infrastructure.database import retry_on_db_lock
from replyq.observability.logging import get_logger
from replyq.observability.structured import EventType
from replyq.observability.structured import get_logger as get_structured_logger
from replyq.observability.telemetry import counter
from replyq.storage import BaseRepository

logger = get_logger(__name__)


class Template(BaseModel):
    id: int
    name: str
    content: str
    category: str = "general"
    intent: str | None = None
    tone: str | None = None
    language: str = "en"
    usage_count: int = 0
    created_at: datetime


class TemplateRepository(BaseRepository):
    """CRUD for the templates table."""

    def __init__(self) -> None:
        super().__init__("templates")

    @retry_on_db_lock()
    def create(
        self,
        name: str,
        content: str,
        category: str = "general",
        intent: str | None = None,
        tone: str | None = None,
        language: str = "en",
    ) -> Template:
        now = datetime.now(UTC)
        template_id = self.execute(
            """
            INSERT INTO templates (name, content, category, intent, tone, language, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (name, content, category, intent, tone, language, now.isoformat()),
        )
        assert template_id is not None
        return Template(
            id=template_id,
            name=name,
            content=content,
            category=category,
            intent=intent,
            tone=tone,
            language=language,
            created_at=now,
        )

    def get(self, template_id: int) -> Template | None:
        row = self.query_one("SELECT * FROM templates WHERE id = ?", (template_id,))
        return Template(**dict(row)) if row is not None else None

    def list_by_category(self, category: str) -> list[Template]:
        rows = self.query_all(
            "SELECT * FROM templates WHERE category = ? ORDER BY created_at DESC", (category,)
        )
        return [Template(**dict(row)) for row in rows]


def save_template(
    name: str,
    content: str,
    category: str = "general",
    intent: str | None = None,
    tone: str | None = None,
    language: str = "en",
    repository: TemplateRepository | None = None,
) -> Template:
    """
    Validate and persist a template.

    Raises:
        ValidationError: Empty name or content shorter than the minimum
        StorageUnavailableError: Database missing, locked past retries, or failing
    """
    name = name.strip()
    if not name:
        raise ValidationError("Template name is required", field="name")
    if len(content.strip()) < TEMPLATE_MIN_CONTENT_CHARS:
        raise ValidationError(
            f"Template content must be at least {TEMPLATE_MIN_CONTENT_CHARS} characters",
            field="content",
        )

    repo = repository or TemplateRepository()
    s_logger = get_structured_logger()
    try:
        template = repo.create(name, content, category, intent, tone, language)
    except (sqlite3.Error, FileNotFoundError) as e:
        counter("storage.templates.unavailable")
        logger.error("Template storage unavailable: %s", e)
        s_logger.log_event(
            EventType.STORAGE_UNAVAILABLE, stage="storage", reason=type(e).__name__
        )
        raise StorageUnavailableError(
            "Template storage is unavailable",
            retry_after_seconds=STORAGE_RETRY_AFTER_SECONDS,
        ) from e

    counter("storage.templates.saved")
    s_logger.log_event(
        EventType.STORAGE_WRITE_OK, stage="storage", template_id=template.id, category=category
    )
    return template
