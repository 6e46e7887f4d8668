"""
Memory scheduling constants.

This module contains the static parameters of the fixed-interval table and the
adaptive (SM2-like) formula. No runtime configuration - pure constants only.
"""
from typing import Dict, Tuple

# Fixed-interval table: proficiency level -> days until the next review.
# Levels beyond the last entry reuse it.
FIXED_INTERVAL_DAYS: Tuple[int, ...] = (0, 1, 3, 7, 15, 30)

# Labels for the table entries, used when describing an interval.
FIXED_INTERVAL_LABELS: Dict[int, str] = {
    0: "review now",
    1: "tomorrow",
    3: "in 3 days",
    7: "in 1 week",
    15: "in 2 weeks",
    30: "in 1 month",
}

# Proficiency ceilings per strategy.
BASIC_MAX_LEVEL: int = 5
ADAPTIVE_MAX_LEVEL: int = 9

# Adaptive formula parameters.
MIN_EASINESS_FACTOR: float = 1.3
DEFAULT_EASINESS_FACTOR: float = 2.5
EASINESS_FACTOR_MODIFIER: float = 0.1
MAX_QUALITY: int = 5
SUCCESS_QUALITY: int = 3
LEVEL_UP_QUALITY: int = 4

# Accuracy bands (lower bound -> base quality), checked in order.
ACCURACY_BANDS: Tuple[Tuple[float, int], ...] = (
    (0.90, 5),
    (0.80, 4),
    (0.60, 3),
    (0.40, 2),
)
FLOOR_QUALITY: int = 1

# Response time bands (upper bound in ms -> quality adjustment).
RESPONSE_TIME_BANDS: Tuple[Tuple[int, float], ...] = (
    (2000, 0.5),
    (5000, 0.0),
    (10000, -0.2),
)
SLOW_RESPONSE_ADJUSTMENT: float = -0.5

NEUTRAL_DIFFICULTY: float = 3.0
DIFFICULTY_WEIGHT: float = 0.2

# Accuracy thresholds for bare accuracy scores under the basic strategy.
ACCURACY_LEVEL_UP_THRESHOLD: float = 0.8
ACCURACY_LEVEL_DOWN_THRESHOLD: float = 0.5

# Neutral inputs used when a bare accuracy score feeds the adaptive formula.
NEUTRAL_RESPONSE_TIME_MS: int = 3000

# Queue priority weight per missing proficiency level.
PROFICIENCY_PRIORITY_WEIGHT: float = 0.1

# Level from which a word counts as mastered in statistics.
MASTERED_LEVEL_THRESHOLD: int = 4

SECONDS_PER_DAY: float = 86400.0
