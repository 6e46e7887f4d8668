# vocabcore/scheduler.py

"""
Memory state engine for vocabcore.

Two interchangeable scheduling strategies are supported:

* the fixed-interval table, which maps a proficiency level to a day offset;
* the adaptive (SM2-like) formula, which evolves easiness, interval and
  repetitions from a continuous review result.

Every function here is pure: no I/O and no hidden state.
"""

import logging
import math
from datetime import datetime, timedelta
from typing import Optional, Tuple

from .constants import (
    ACCURACY_BANDS,
    DIFFICULTY_WEIGHT,
    EASINESS_FACTOR_MODIFIER,
    FIXED_INTERVAL_DAYS,
    FIXED_INTERVAL_LABELS,
    FLOOR_QUALITY,
    LEVEL_UP_QUALITY,
    MAX_QUALITY,
    MIN_EASINESS_FACTOR,
    NEUTRAL_DIFFICULTY,
    RESPONSE_TIME_BANDS,
    SECONDS_PER_DAY,
    SLOW_RESPONSE_ADJUSTMENT,
    SUCCESS_QUALITY,
)
from .exceptions import InvariantViolation, ValidationError
from .models import (
    MemoryState,
    ReviewResult,
    SchedulingStrategy,
    ensure_utc,
)

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Rounds to the nearest integer, with .5 going up."""
    return int(math.floor(value + 0.5))


def fixed_interval_days(level: int) -> int:
    """Day offset of the fixed-interval table for the given level."""
    if level < 0:
        raise ValidationError(f"Invalid proficiency level: {level}. Must be >= 0.")
    return FIXED_INTERVAL_DAYS[min(level, len(FIXED_INTERVAL_DAYS) - 1)]


def compute_next_review(
    strategy: SchedulingStrategy, level: int, now: datetime
) -> datetime:
    """
    Computes the next review time from the fixed-interval table.

    Both strategies schedule level-driven reviews (the discrete "known"
    outcome) through the same table; the adaptive strategy's own intervals
    come from compute_adaptive_state().

    Args:
        strategy: The active scheduling strategy.
        level: The proficiency level after the review. Levels beyond the
            table reuse its last entry.
        now: The review timestamp.

    Returns:
        The UTC timestamp of the next review.

    Raises:
        ValidationError: If the level is negative.
    """
    days = fixed_interval_days(level)
    next_review = ensure_utc(now) + timedelta(days=days)
    logger.debug(
        f"Fixed-interval schedule ({strategy.value}): level {level} -> +{days} days"
    )
    return next_review


def _accuracy_band(accuracy_score: float) -> int:
    for lower_bound, quality in ACCURACY_BANDS:
        if accuracy_score >= lower_bound:
            return quality
    return FLOOR_QUALITY


def _response_time_adjustment(response_time_ms: int) -> float:
    for upper_bound, adjustment in RESPONSE_TIME_BANDS:
        if response_time_ms <= upper_bound:
            return adjustment
    return SLOW_RESPONSE_ADJUSTMENT


def quality_score(
    accuracy_score: float,
    response_time_ms: int,
    difficulty: float = NEUTRAL_DIFFICULTY,
) -> int:
    """
    Summarizes a review as an integer quality in [0, 5].

    The accuracy band gives the base value, fast answers add up to 0.5 and slow
    ones subtract up to 0.5 (capped at 5), and subjective difficulty shifts the
    result by 0.2 per step away from the neutral difficulty 3.

    Raises:
        ValidationError: If accuracy is outside [0, 1], the response time is
            negative or the difficulty is outside [1, 5].
    """
    if not (0.0 <= accuracy_score <= 1.0):
        raise ValidationError(
            f"Invalid accuracy_score: {accuracy_score}. Must be within [0, 1]."
        )
    if response_time_ms < 0:
        raise ValidationError(
            f"Invalid response_time_ms: {response_time_ms}. Must be >= 0."
        )
    if not (1 <= difficulty <= 5):
        raise ValidationError(
            f"Invalid difficulty: {difficulty}. Must be within [1, 5]."
        )

    quality = float(_accuracy_band(accuracy_score))
    quality = min(
        MAX_QUALITY, quality + _response_time_adjustment(response_time_ms)
    )
    penalty = (difficulty - NEUTRAL_DIFFICULTY) * DIFFICULTY_WEIGHT
    quality = max(0.0, min(float(MAX_QUALITY), quality - penalty))
    return round_half_up(quality)


def update_easiness_factor(easiness_factor: float, quality: int) -> float:
    """Applies the SM2 easiness update, bounded below by 1.3."""
    lapse = MAX_QUALITY - quality
    return max(
        MIN_EASINESS_FACTOR,
        easiness_factor
        + (EASINESS_FACTOR_MODIFIER - lapse * (0.08 + lapse * 0.02)),
    )


def compute_adaptive_state(
    state: MemoryState, result: ReviewResult, now: datetime
) -> Tuple[MemoryState, datetime]:
    """
    Applies one review result to an adaptive memory state.

    A quality of 3 or more is a success: the interval becomes 1 day, then
    6 days, then grows by the easiness factor, and quality 4+ also raises the
    proficiency level (up to 9). Anything lower resets repetitions, sets the
    interval to 1 day and lowers the level by one. The easiness factor is
    always updated.

    Args:
        state: The memory state before the review.
        result: The observed review result.
        now: The review timestamp.

    Returns:
        A tuple of the new memory state and the next review timestamp.

    Raises:
        ValidationError: If the result carries out-of-range values.
        InvariantViolation: If the computed state leaves its allowed range.
    """
    quality = quality_score(
        result.accuracy_score,
        result.response_time_ms,
        result.subjective_difficulty,
    )

    interval = state.interval
    repetitions = state.repetitions
    level = state.proficiency_level

    if quality >= SUCCESS_QUALITY:
        if repetitions == 0:
            interval = 1
        elif repetitions == 1:
            interval = 6
        else:
            interval = round_half_up(interval * state.easiness_factor)
        repetitions += 1
        if quality >= LEVEL_UP_QUALITY and level < SchedulingStrategy.Adaptive.max_level:
            level += 1
    else:
        repetitions = 0
        interval = 1
        level = max(0, level - 1)

    easiness_factor = update_easiness_factor(state.easiness_factor, quality)

    if not (0 <= level <= SchedulingStrategy.Adaptive.max_level):
        raise InvariantViolation(
            f"Adaptive transition produced proficiency level {level}."
        )
    if interval < 0 or easiness_factor < MIN_EASINESS_FACTOR:
        raise InvariantViolation(
            f"Adaptive transition produced interval={interval}, "
            f"easiness_factor={easiness_factor}."
        )

    new_state = MemoryState(
        proficiency_level=level,
        easiness_factor=easiness_factor,
        interval=interval,
        repetitions=repetitions,
    )
    next_review = ensure_utc(now) + timedelta(days=interval)

    logger.debug(
        f"Adaptive schedule: quality={quality}, level {state.proficiency_level}->{level}, "
        f"interval {state.interval}->{interval}, EF {state.easiness_factor:.2f}->{easiness_factor:.2f}"
    )
    return new_state, next_review


def describe_interval(days: int) -> str:
    """
    Returns a short human-readable description of a review interval.

    Exact table entries use their table label.
    """
    if days in FIXED_INTERVAL_LABELS:
        return FIXED_INTERVAL_LABELS[days]
    if days < 1:
        return "review now"
    if days < 7:
        return f"in {days} days"
    if days < 30:
        weeks = round_half_up(days / 7)
        return f"in {weeks} week{'s' if weeks != 1 else ''}"
    if days < 365:
        months = round_half_up(days / 30)
        return f"in {months} month{'s' if months != 1 else ''}"
    years = round_half_up(days / 365)
    return f"in {years} year{'s' if years != 1 else ''}"


def forgetting_probability(
    state: MemoryState,
    last_review_at: Optional[datetime],
    now: datetime,
) -> float:
    """
    Estimates the probability that a word has been forgotten.

    Uses the simplified forgetting curve P = 1 - exp(-t / S), where t is the
    number of days since the last review and S = level * easiness (at least
    0.1). A word that was never reviewed has t = 0.
    """
    if last_review_at is None:
        elapsed_days = 0.0
    else:
        elapsed_days = max(
            0.0,
            (ensure_utc(now) - ensure_utc(last_review_at)).total_seconds()
            / SECONDS_PER_DAY,
        )
    memory_strength = max(0.1, state.proficiency_level * state.easiness_factor)
    probability = 1.0 - math.exp(-elapsed_days / memory_strength)
    return max(0.0, min(1.0, probability))
