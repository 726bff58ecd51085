"""Tests for template persistence."""

import sqlite3

import pytest

from replyq.errors import StorageUnavailableError, ValidationError
from replyq.infrastructure.database import get_db_path, init_database, retry_on_db_lock
from replyq.observability.telemetry import get_counter
from replyq.storage.templates import TemplateRepository, save_template


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    monkeypatch.setenv("REPLYQ_DB_PATH", str(tmp_path / "templates.db"))
    init_database()
    return get_db_path()


class TestSaveTemplate:
    def test_saves_and_reads_back(self, temp_db):
        template = save_template(
            "  Interview invite ", "Hi {name}, are you free Tuesday?", category="recruiting", tone="friendly"
        )

        assert template.id > 0
        assert template.name == "Interview invite"
        assert template.usage_count == 0
        stored = TemplateRepository().get(template.id)
        assert stored.content == "Hi {name}, are you free Tuesday?"
        assert stored.category == "recruiting"
        assert stored.tone == "friendly"
        assert get_counter("storage.templates.saved") == 1

    def test_list_by_category(self, temp_db):
        save_template("One", "First template body", category="a")
        save_template("Two", "Second template body", category="b")
        save_template("Three", "Third template body", category="a")

        names = {t.name for t in TemplateRepository().list_by_category("a")}
        assert names == {"One", "Three"}

    def test_missing_template(self, temp_db):
        assert TemplateRepository().get(999) is None

    @pytest.mark.parametrize(("name", "content", "field"), [("  ", "long enough content", "name"), ("x", " short   ", "content")])
    def test_validation(self, temp_db, name, content, field):
        with pytest.raises(ValidationError) as exc_info:
            save_template(name, content)
        assert exc_info.value.field == field

    def test_missing_database_is_unavailable(self, tmp_path, monkeypatch):
        monkeypatch.setenv("REPLYQ_DB_PATH", str(tmp_path / "absent" / "replyq.db"))

        with pytest.raises(StorageUnavailableError) as exc_info:
            save_template("Name", "Valid template content")

        assert exc_info.value.retry_after_seconds == 30
        assert get_counter("storage.templates.unavailable") == 1


class TestRetryOnDbLock:
    def test_retries_locked_then_succeeds(self):
        calls = []

        @retry_on_db_lock(max_retries=2, base_delay=0.001, max_delay=0.001)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise sqlite3.OperationalError("database is locked")
            return "ok"

        assert flaky() == "ok"
        assert len(calls) == 3
        assert get_counter("database.lock_retry") == 2

    def test_other_errors_not_retried(self):
        calls = []

        @retry_on_db_lock(max_retries=3, base_delay=0.001)
        def broken():
            calls.append(1)
            raise sqlite3.OperationalError("no such table: templates")

        with pytest.raises(sqlite3.OperationalError):
            broken()
        assert len(calls) == 1

    def test_gives_up_after_max_retries(self):
        @retry_on_db_lock(max_retries=1, base_delay=0.001, max_delay=0.001)
        def always_locked():
            raise sqlite3.OperationalError("database is locked")

        with pytest.raises(sqlite3.OperationalError):
            always_locked()
