import logging
import pytest
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional
from datetime import datetime, timezone

from vocabcore.db import VocabularyDatabase
from vocabcore.exceptions import WordNotFoundError
from vocabcore.models import ActivityType, AddReason, WordRecord


# each test runs on cwd to its temp dir
@pytest.fixture(autouse=True)
def go_to_tmpdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Run every test with its temporary directory as the working directory."""
    monkeypatch.chdir(tmp_path)
    yield


# --- Time Fixtures ---
@pytest.fixture
def now() -> datetime:
    """A fixed review timestamp: 2024-03-10 12:00 UTC."""
    return datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)


# --- Database Fixtures ---
@pytest.fixture
def db_path_memory() -> str:
    return ":memory:"


@pytest.fixture
def db_path_file(tmp_path: Path) -> Path:
    """Path to a temporary DuckDB file named test_vocab.db."""
    return tmp_path / "test_vocab.db"


@pytest.fixture(params=["memory", "file"])
def db_manager(
    request, db_path_memory: str, db_path_file: Path
) -> Generator[VocabularyDatabase, None, None]:
    """
    Provide a VocabularyDatabase instance for tests, either in-memory or file-backed, and ensure proper teardown.

    Parameters:
        request: pytest `FixtureRequest` providing `param`, either `"memory"` or `"file"`.
    """
    if request.param == "memory":
        db_man = VocabularyDatabase(db_path_memory)
    else:
        db_man = VocabularyDatabase(db_path_file)
    try:
        yield db_man
    finally:
        db_man.close_connection()
        if request.param == "file" and db_path_file.exists():
            try:
                db_path_file.unlink()
            except OSError as e:
                logging.warning(
                    f"Error removing temporary DB file in test fixture teardown: {e}"
                )


@pytest.fixture
def initialized_db_manager(db_manager: VocabularyDatabase) -> VocabularyDatabase:
    """Ensure the provided VocabularyDatabase has its schema created and return it."""
    db_manager.initialize_schema()
    return db_manager


@pytest.fixture
def in_memory_db() -> Generator[VocabularyDatabase, None, None]:
    db = VocabularyDatabase(":memory:")
    db.initialize_schema()
    try:
        yield db
    finally:
        db.close_connection()


# --- Record Fixtures ---
@pytest.fixture
def make_word() -> Callable[..., WordRecord]:
    """
    Factory for WordRecord instances.

    Every field can be overridden by keyword; the defaults describe a new,
    never-reviewed word created on 2024-03-01.
    """

    def _make(**overrides: Any) -> WordRecord:
        data: Dict[str, Any] = {
            "id": 1,
            "text": "serendipity",
            "definition": "a happy accident",
            "add_reason": AddReason.TranslationLookup,
            "created_at": datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc),
        }
        data.update(overrides)
        return WordRecord(**data)

    return _make


@pytest.fixture
def sample_word(make_word) -> WordRecord:
    return make_word()


# --- Collaborator Fakes ---
class InMemoryRecordStore:
    """
    Dictionary-backed record store.

    `transaction` snapshots the records and restores them if the callable
    raises. Every update call is appended to `update_calls`.
    """

    def __init__(self, records: Optional[List[WordRecord]] = None):
        self.records: Dict[int, WordRecord] = {r.id: r for r in records or []}
        self.update_calls: List[tuple] = []
        self.fail_on_update: Optional[int] = None

    def get_by_id(self, word_id: int) -> Optional[WordRecord]:
        return self.records.get(word_id)

    def get_by_text(self, text: str) -> Optional[WordRecord]:
        normalized = text.lower().strip()
        for record in self.records.values():
            if record.text == normalized:
                return record
        return None

    def list_due(self, now: datetime) -> List[WordRecord]:
        return [
            r
            for r in self.records.values()
            if r.next_review_at is None or r.next_review_at <= now
        ]

    def update(self, word_id: int, fields: Mapping[str, Any]) -> None:
        self.update_calls.append((word_id, dict(fields)))
        if word_id not in self.records:
            raise WordNotFoundError(word_id)
        if self.fail_on_update is not None and len(self.update_calls) >= self.fail_on_update:
            raise RuntimeError("simulated storage failure")
        self.records[word_id] = self.records[word_id].model_copy(update=dict(fields))

    def transaction(self, fn):
        snapshot = dict(self.records)
        try:
            return fn()
        except Exception:
            self.records = snapshot
            raise


class RecordingActivityLog:
    def __init__(self):
        self.entries: List[Dict[str, Any]] = []

    def record(
        self,
        activity_type: ActivityType,
        word_id: Optional[int] = None,
        accuracy_score: Optional[float] = None,
        time_spent_seconds: float = 0.0,
    ) -> None:
        self.entries.append(
            {
                "activity_type": activity_type,
                "word_id": word_id,
                "accuracy_score": accuracy_score,
                "time_spent_seconds": time_spent_seconds,
            }
        )


@pytest.fixture
def store_factory() -> Callable[..., InMemoryRecordStore]:
    return InMemoryRecordStore


@pytest.fixture
def memory_store(sample_word) -> InMemoryRecordStore:
    return InMemoryRecordStore([sample_word])


@pytest.fixture
def activity_log() -> RecordingActivityLog:
    return RecordingActivityLog()
