"""Frequency classification for sequences of payment dates"""

import statistics
from datetime import date
from typing import Dict, List, Sequence

from recurring_engine.domain.models import FrequencyAnalysis

# Bucket centers in days; ties resolve to the shorter bucket
FREQUENCY_CENTERS: Dict[str, int] = {
    "weekly": 7,
    "monthly": 30,
    "quarterly": 91,
    "yearly": 365,
}

# Multiplier applied to date_variance_days per bucket
TOLERANCE_MULTIPLIERS: Dict[str, int] = {
    "weekly": 1,
    "monthly": 2,
    "quarterly": 3,
    "yearly": 7,
}


def calculate_gaps(dates: Sequence[date]) -> List[int]:
    """Day gaps between consecutive dates (sorted ascending first)"""
    ordered = sorted(dates)
    return [(ordered[i + 1] - ordered[i]).days for i in range(len(ordered) - 1)]


def nearest_frequency(mean_gap: float) -> str:
    return min(FREQUENCY_CENTERS, key=lambda name: abs(mean_gap - FREQUENCY_CENTERS[name]))


def analyze_frequency_pattern(
    dates: Sequence[date],
    min_occurrences: int = 2,
    date_variance_days: int = 3,
) -> FrequencyAnalysis:
    """
    Classify dates into a frequency bucket and score how evenly spaced they are.

    Requirements:
    - Fewer than 2 dates: non-committal monthly with regularity 0
    - Frequency = bucket center nearest to the mean gap
    - Regularity = clamp(1 - coefficient of variation, 0, 1)

    interval_match_ratio is the share of gaps within date_variance_days
    (scaled per bucket) of the detected center.
    """
    if len(dates) < 2:
        return FrequencyAnalysis(detected_frequency="monthly", regularity=0.0)

    gaps = calculate_gaps(dates)
    mean_gap = sum(gaps) / len(gaps)
    frequency = nearest_frequency(mean_gap)

    # All occurrences on the same day: no spacing to measure
    if mean_gap <= 0:
        return FrequencyAnalysis(
            detected_frequency=frequency,
            regularity=0.0,
            is_conclusive=len(dates) >= min_occurrences,
        )

    cv = statistics.pstdev(gaps) / mean_gap
    regularity = min(max(1.0 - cv, 0.0), 1.0)

    tolerance = max(date_variance_days, 0) * TOLERANCE_MULTIPLIERS[frequency]
    center = FREQUENCY_CENTERS[frequency]
    matching = sum(1 for gap in gaps if abs(gap - center) <= tolerance)

    return FrequencyAnalysis(
        detected_frequency=frequency,
        regularity=regularity,
        mean_gap=mean_gap,
        coefficient_of_variation=cv,
        interval_match_ratio=matching / len(gaps),
        is_conclusive=len(dates) >= min_occurrences,
    )
