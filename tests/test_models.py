import pytest
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError as PydanticValidationError

from vocabcore.models import (
    ActivityEntry,
    AddReason,
    MemoryState,
    ReviewOutcome,
    SchedulingStrategy,
    WordRecord,
    ensure_utc,
)


class TestWordRecord:
    def test_defaults(self):
        word = WordRecord(id=1, text="ephemeral", definition="short-lived")
        assert word.proficiency_level == 0
        assert word.review_count == 0
        assert word.next_review_at is None
        assert word.last_review_at is None
        assert word.add_reason is AddReason.TranslationLookup
        assert word.easiness_factor == 2.5
        assert word.created_at.tzinfo is not None

    def test_naive_timestamps_become_utc(self):
        word = WordRecord(
            id=1,
            text="ephemeral",
            definition="short-lived",
            next_review_at=datetime(2024, 3, 10, 12, 0),
        )
        assert word.next_review_at == datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)

    def test_offset_timestamps_are_converted(self):
        tz = timezone(timedelta(hours=2))
        word = WordRecord(
            id=1,
            text="ephemeral",
            definition="short-lived",
            created_at=datetime(2024, 3, 10, 14, 0, tzinfo=tz),
        )
        assert word.created_at.tzinfo == timezone.utc
        assert word.created_at.hour == 12

    @pytest.mark.parametrize(
        "overrides",
        [
            {"proficiency_level": -1},
            {"proficiency_level": 10},
            {"easiness_factor": 1.2},
            {"review_count": -1},
            {"text": ""},
            {"add_reason": "curiosity"},
            {"unexpected": 1},
        ],
    )
    def test_invalid_fields_rejected(self, overrides):
        data = {"id": 1, "text": "ephemeral", "definition": "short-lived"}
        data.update(overrides)
        with pytest.raises(PydanticValidationError):
            WordRecord(**data)

    def test_assignment_is_validated(self, sample_word):
        with pytest.raises(PydanticValidationError):
            sample_word.proficiency_level = 12

    def test_memory_state_view(self, make_word):
        word = make_word(proficiency_level=3, easiness_factor=2.2, interval_days=6, repetitions=2)
        assert word.memory_state == MemoryState(
            proficiency_level=3, easiness_factor=2.2, interval=6, repetitions=2
        )


def test_memory_state_is_frozen():
    state = MemoryState()
    with pytest.raises(PydanticValidationError):
        state.interval = 3


def test_enum_values():
    assert [o.value for o in ReviewOutcome] == ["unknown", "familiar", "known"]
    assert AddReason("pronunciation_error") is AddReason.PronunciationError
    assert SchedulingStrategy.Basic.max_level == 5
    assert SchedulingStrategy.Adaptive.max_level == 9


def test_add_reason_priority_order():
    assert (
        AddReason.TranslationLookup.priority
        < AddReason.ListeningDifficulty.priority
        < AddReason.PronunciationError.priority
    )


def test_activity_entry_bounds():
    with pytest.raises(PydanticValidationError):
        ActivityEntry(accuracy_score=1.2)
    with pytest.raises(PydanticValidationError):
        ActivityEntry(time_spent_seconds=-1)
    entry = ActivityEntry(word_id=3, accuracy_score=0.7)
    assert entry.activity_id is None


def test_ensure_utc():
    naive = datetime(2024, 1, 1, 8, 0)
    assert ensure_utc(naive).tzinfo == timezone.utc
    aware = datetime(2024, 1, 1, 8, 0, tzinfo=timezone(timedelta(hours=-3)))
    assert ensure_utc(aware) == datetime(2024, 1, 1, 11, 0, tzinfo=timezone.utc)
