"""
Tests for the ProficiencyTracker and the pure transition functions.
"""

import itertools
import pytest
from datetime import timedelta
from unittest.mock import MagicMock

from vocabcore.exceptions import ValidationError, WordNotFoundError
from vocabcore.models import (
    ActivityType,
    MasteryStage,
    ReviewOutcome,
    ReviewResult,
    SchedulingStrategy,
)
from vocabcore.proficiency_tracker import (
    ProficiencyTracker,
    mastery_stage,
    transition,
    transition_accuracy,
    transition_outcome,
)


@pytest.fixture
def tracker(memory_store, activity_log):
    return ProficiencyTracker(
        memory_store,
        activity_log=activity_log,
        strategy=SchedulingStrategy.Basic,
        familiar_delay=timedelta(hours=2),
        activity_type=ActivityType.Reading,
    )


class TestDiscreteOutcomes:
    def test_unknown_lowers_level_and_is_due_now(self, tracker, make_word, memory_store, now):
        word = make_word(proficiency_level=3)
        memory_store.records[word.id] = word

        updated = tracker.apply_outcome(word, ReviewOutcome.Unknown, now=now)

        assert updated.proficiency_level == 2
        assert updated.next_review_at == now
        assert updated.last_review_at == now
        assert updated.review_count == 1
        assert memory_store.records[word.id] == updated

    def test_unknown_at_level_zero_stays_at_zero(self, tracker, sample_word, now):
        updated = tracker.apply_outcome(sample_word, ReviewOutcome.Unknown, now=now)
        assert updated.proficiency_level == 0
        assert updated.next_review_at == now

    def test_familiar_keeps_level_and_waits(self, tracker, make_word, memory_store, now):
        word = make_word(proficiency_level=2)
        memory_store.records[word.id] = word

        updated = tracker.apply_outcome(word, ReviewOutcome.Familiar, now=now)

        assert updated.proficiency_level == 2
        assert updated.next_review_at == now + timedelta(hours=2)

    def test_familiar_delay_is_configurable(self, memory_store, sample_word, now):
        tracker = ProficiencyTracker(
            memory_store,
            strategy=SchedulingStrategy.Basic,
            familiar_delay=timedelta(hours=6),
        )
        updated = tracker.apply_outcome(sample_word, ReviewOutcome.Familiar, now=now)
        assert updated.next_review_at == now + timedelta(hours=6)

    def test_zero_familiar_delay_is_honoured(self, memory_store, sample_word, now):
        tracker = ProficiencyTracker(
            memory_store,
            strategy=SchedulingStrategy.Basic,
            familiar_delay=timedelta(0),
        )
        assert tracker.familiar_delay == timedelta(0)
        updated = tracker.apply_outcome(sample_word, ReviewOutcome.Familiar, now=now)
        assert updated.next_review_at == now

    def test_known_raises_level_and_uses_table(self, tracker, sample_word, now):
        updated = tracker.apply_outcome(sample_word, ReviewOutcome.Known, now=now)
        assert updated.proficiency_level == 1
        assert updated.next_review_at == now + timedelta(days=1)

    def test_known_at_ceiling_stays_at_ceiling(self, tracker, make_word, memory_store, now):
        word = make_word(proficiency_level=5)
        memory_store.records[word.id] = word
        updated = tracker.apply_outcome(word, ReviewOutcome.Known, now=now)
        assert updated.proficiency_level == 5
        assert updated.next_review_at == now + timedelta(days=30)

    def test_activity_entry_per_review(self, tracker, sample_word, activity_log, now):
        tracker.apply_outcome(
            sample_word, ReviewOutcome.Familiar, now=now, time_spent_seconds=4.5
        )
        assert activity_log.entries == [
            {
                "activity_type": ActivityType.Reading,
                "word_id": sample_word.id,
                "accuracy_score": 0.7,
                "time_spent_seconds": 4.5,
            }
        ]

    def test_input_record_is_not_mutated(self, sample_word, now):
        before = sample_word.model_copy()
        transition_outcome(sample_word, ReviewOutcome.Known, now)
        assert sample_word == before

    @pytest.mark.parametrize("strategy", list(SchedulingStrategy))
    def test_level_stays_in_range_for_any_sequence(self, make_word, strategy, now):
        for outcomes in itertools.product(list(ReviewOutcome), repeat=6):
            record = make_word()
            for outcome in outcomes:
                record = transition(record, outcome, now, strategy=strategy).record
                assert 0 <= record.proficiency_level <= strategy.max_level

    def test_unknown_always_due_now(self, make_word, now):
        for level in range(6):
            record = make_word(proficiency_level=level)
            result = transition_outcome(record, ReviewOutcome.Unknown, now)
            assert result.record.next_review_at == now

    def test_unknown_leaves_adaptive_fields_alone(self, make_word, now):
        record = make_word(easiness_factor=2.1, interval_days=6, repetitions=2)
        result = transition_outcome(record, ReviewOutcome.Unknown, now)
        assert "easiness_factor" not in result.fields
        assert result.record.repetitions == 2


class TestContinuousResults:
    def test_review_result_updates_adaptive_state(self, memory_store, activity_log, sample_word, now):
        tracker = ProficiencyTracker(
            memory_store,
            activity_log=activity_log,
            strategy=SchedulingStrategy.Adaptive,
        )
        result = ReviewResult(accuracy_score=0.95, response_time_ms=1500)

        updated = tracker.apply_outcome(sample_word, result, now=now)

        assert updated.proficiency_level == 1
        assert updated.interval_days == 1
        assert updated.repetitions == 1
        assert updated.easiness_factor == pytest.approx(2.6)
        assert updated.next_review_at == now + timedelta(days=1)
        assert activity_log.entries[0]["accuracy_score"] == 0.95
        assert activity_log.entries[0]["time_spent_seconds"] == pytest.approx(1.5)

    def test_review_result_level_clamped_to_basic_ceiling(self, make_word, now):
        record = make_word(proficiency_level=5, interval_days=6, repetitions=2)
        result = ReviewResult(accuracy_score=1.0, response_time_ms=500)
        application = transition(record, result, now, strategy=SchedulingStrategy.Basic)
        assert application.record.proficiency_level == 5
        assert application.record.interval_days == 15

    @pytest.mark.parametrize(
        "accuracy, expected_level", [(0.9, 3), (0.8, 3), (0.6, 2), (0.5, 2), (0.3, 1)]
    )
    def test_accuracy_path_basic(self, make_word, now, accuracy, expected_level):
        record = make_word(proficiency_level=2)
        result = transition_accuracy(record, accuracy, now)
        assert result.record.proficiency_level == expected_level
        expected_days = {1: 1, 2: 3, 3: 7}[expected_level]
        assert result.record.next_review_at == now + timedelta(days=expected_days)
        assert result.accuracy_score == accuracy

    def test_accuracy_path_adaptive_uses_neutral_result(self, sample_word, now):
        via_float = transition(sample_word, 0.85, now, strategy=SchedulingStrategy.Adaptive)
        via_result = transition(
            sample_word,
            ReviewResult(accuracy_score=0.85, response_time_ms=3000, subjective_difficulty=3),
            now,
            strategy=SchedulingStrategy.Adaptive,
        )
        assert via_float.fields == via_result.fields

    @pytest.mark.parametrize("bad_score", [True, "known", None, 1.5, -0.2])
    def test_malformed_scores_never_reach_store(self, sample_word, now, bad_score):
        store = MagicMock()
        tracker = ProficiencyTracker(store, strategy=SchedulingStrategy.Basic)
        with pytest.raises(ValidationError):
            tracker.apply_outcome(sample_word, bad_score, now=now)
        store.update.assert_not_called()


class TestStoreInteraction:
    def test_not_found_propagates_unchanged(self, sample_word, now):
        store = MagicMock()
        store.update.side_effect = WordNotFoundError(sample_word.id)
        log = MagicMock()
        tracker = ProficiencyTracker(store, activity_log=log, strategy=SchedulingStrategy.Basic)

        with pytest.raises(WordNotFoundError) as exc_info:
            tracker.apply_outcome(sample_word, ReviewOutcome.Known, now=now)

        assert exc_info.value.word_id == sample_word.id
        log.record.assert_not_called()

    def test_unknown_word_in_fake_store(self, store_factory, sample_word, now):
        tracker = ProficiencyTracker(store_factory(), strategy=SchedulingStrategy.Basic)
        with pytest.raises(WordNotFoundError):
            tracker.apply_outcome(sample_word, ReviewOutcome.Known, now=now)

    def test_activity_log_failure_does_not_fail_review(self, memory_store, sample_word, now):
        log = MagicMock()
        log.record.side_effect = RuntimeError("log offline")
        tracker = ProficiencyTracker(memory_store, activity_log=log, strategy=SchedulingStrategy.Basic)

        updated = tracker.apply_outcome(sample_word, ReviewOutcome.Known, now=now)

        assert updated.proficiency_level == 1
        assert memory_store.records[sample_word.id].proficiency_level == 1


class TestBatchApply:
    def test_length_mismatch_never_calls_store(self, sample_word, now):
        store = MagicMock()
        tracker = ProficiencyTracker(store, strategy=SchedulingStrategy.Basic)

        with pytest.raises(ValidationError):
            tracker.batch_apply([sample_word], [ReviewOutcome.Known, ReviewOutcome.Known], now=now)

        store.update.assert_not_called()
        store.transaction.assert_not_called()

    def test_invalid_score_anywhere_writes_nothing(self, make_word, now):
        store = MagicMock()
        tracker = ProficiencyTracker(store, strategy=SchedulingStrategy.Basic)
        words = [make_word(id=1, text="a"), make_word(id=2, text="b")]

        with pytest.raises(ValidationError):
            tracker.batch_apply(words, [ReviewOutcome.Known, 2.0], now=now)

        store.update.assert_not_called()
        store.transaction.assert_not_called()

    def test_batch_applies_all_in_one_transaction(self, store_factory, activity_log, make_word, now):
        words = [make_word(id=1, text="a"), make_word(id=2, text="b", proficiency_level=2)]
        store = store_factory(words)
        tracker = ProficiencyTracker(store, activity_log=activity_log, strategy=SchedulingStrategy.Basic)

        updated = tracker.batch_apply(words, [ReviewOutcome.Known, ReviewOutcome.Unknown], now=now)

        assert [w.proficiency_level for w in updated] == [1, 1]
        assert store.records[1].proficiency_level == 1
        assert store.records[2].next_review_at == now
        assert [e["word_id"] for e in activity_log.entries] == [1, 2]

    def test_failure_rolls_back_everything(self, store_factory, activity_log, make_word, now):
        words = [make_word(id=1, text="a"), make_word(id=2, text="b")]
        store = store_factory(words)
        store.fail_on_update = 2
        tracker = ProficiencyTracker(store, activity_log=activity_log, strategy=SchedulingStrategy.Basic)

        with pytest.raises(RuntimeError):
            tracker.batch_apply(words, [ReviewOutcome.Known, ReviewOutcome.Known], now=now)

        assert store.records[1] == words[0]
        assert store.records[2] == words[1]
        assert activity_log.entries == []

    def test_repeated_id_chains_state(self, store_factory, sample_word, now):
        store = store_factory([sample_word])
        tracker = ProficiencyTracker(store, strategy=SchedulingStrategy.Basic)

        updated = tracker.batch_apply(
            [sample_word, sample_word], [ReviewOutcome.Known, ReviewOutcome.Known], now=now
        )

        assert [w.proficiency_level for w in updated] == [1, 2]
        assert store.records[sample_word.id].proficiency_level == 2
        assert store.records[sample_word.id].review_count == 2

    def test_empty_batch(self, sample_word):
        store = MagicMock()
        tracker = ProficiencyTracker(store, strategy=SchedulingStrategy.Basic)
        assert tracker.batch_apply([], []) == []
        store.transaction.assert_not_called()


class TestManualControls:
    def test_set_proficiency(self, tracker, sample_word, memory_store, now):
        updated = tracker.set_proficiency(sample_word, 3, now=now)
        assert updated.proficiency_level == 3
        assert updated.next_review_at == now + timedelta(days=7)
        assert updated.review_count == 0
        assert memory_store.records[sample_word.id].proficiency_level == 3

    @pytest.mark.parametrize("level", [-1, 6])
    def test_set_proficiency_out_of_range(self, tracker, sample_word, level):
        with pytest.raises(ValidationError):
            tracker.set_proficiency(sample_word, level)

    def test_mark_mastered(self, tracker, sample_word, now):
        updated = tracker.mark_mastered(sample_word, now=now)
        assert updated.proficiency_level == 5
        assert mastery_stage(updated, SchedulingStrategy.Basic) is MasteryStage.Mastered

    def test_reset_progress(self, tracker, make_word, memory_store, now):
        word = make_word(proficiency_level=4, easiness_factor=1.9, interval_days=12, repetitions=3)
        memory_store.records[word.id] = word
        updated = tracker.reset_progress(word, now=now)
        assert updated.proficiency_level == 0
        assert updated.next_review_at == now
        assert (updated.easiness_factor, updated.interval_days, updated.repetitions) == (2.5, 0, 0)


def test_mastery_stage(make_word):
    assert mastery_stage(make_word(), SchedulingStrategy.Basic) is MasteryStage.New
    assert mastery_stage(make_word(review_count=2), SchedulingStrategy.Basic) is MasteryStage.Learning
    assert mastery_stage(make_word(proficiency_level=3), SchedulingStrategy.Basic) is MasteryStage.Learning
    assert mastery_stage(make_word(proficiency_level=5), SchedulingStrategy.Basic) is MasteryStage.Mastered
    assert mastery_stage(make_word(proficiency_level=5), SchedulingStrategy.Adaptive) is MasteryStage.Learning
