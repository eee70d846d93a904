"""Scoring engine - amount consistency, pattern confidence and auto-confirm risk"""

import math
from datetime import date
from decimal import Decimal
from typing import Sequence, Union

from recurring_engine.domain.models import TransactionPattern
from recurring_engine.utils.date_utils import DateLike, as_date

Number = Union[int, float]

# Confidence weights
AMOUNT_WEIGHT = 0.4
REGULARITY_WEIGHT = 0.4
OCCURRENCE_WEIGHT = 0.2
TIME_SPAN_SCALE_DAYS = 365.0

# Risk weights
RISK_CONFIDENCE_WEIGHT = 0.4
RISK_AMOUNT_WEIGHT = 0.3
RISK_OCCURRENCE_WEIGHT = 0.2
RISK_RECENCY_WEIGHT = 0.1
RISK_MIN_OCCURRENCES = 5
RISK_RECENT_WINDOW_DAYS = 90

HIGH_VALUE_THRESHOLD = Decimal("10000")
MEDIUM_VALUE_THRESHOLD = Decimal("5000")


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(max(value, low), high)


def _finite(value: Number) -> float:
    """Coerce to float, mapping NaN/inf and garbage to 0"""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def calculate_amount_consistency(
    amounts: Sequence[Decimal],
    average: Decimal,
    tolerance_percent: Number,
) -> float:
    """
    Fraction of amounts within tolerance_percent of the average (0-1).

    All comparisons stay in Decimal; tolerance is derived from str() of the
    percent so 5.0 means exactly 5%, not its binary approximation.
    """
    if not amounts:
        return 0.0

    percent = max(Decimal(str(_finite(tolerance_percent))), Decimal("0"))
    tolerance = abs(average) * percent / Decimal("100")

    consistent = sum(1 for amount in amounts if abs(amount - average) <= tolerance)
    return consistent / len(amounts)


def calculate_occurrence_factor(occurrences: Number, time_span: Number, min_occurrences: Number) -> float:
    """
    Occurrence support in [0, 1].

    Base is occurrences / min_occurrences; longer observed spans close the
    remaining gap to 1 with diminishing returns (1 - e^(-span/365)).
    """
    occurrences = max(_finite(occurrences), 0.0)
    min_occurrences = _finite(min_occurrences)

    if min_occurrences <= 0:
        base = 1.0 if occurrences > 0 else 0.0
    else:
        base = _clamp(occurrences / min_occurrences)

    span = max(_finite(time_span), 0.0)
    span_boost = 1.0 - math.exp(-span / TIME_SPAN_SCALE_DAYS)

    return _clamp(base + (1.0 - base) * span_boost)


def calculate_pattern_confidence(
    amount_consistency: Number,
    date_regularity: Number,
    occurrences: Number,
    time_span: Number,
    min_occurrences: Number,
) -> float:
    """
    Overall confidence that a cluster is a genuine recurring payment (0-1).

    Scoring weights:
    - 40%: Amount consistency
    - 40%: Date regularity
    - 20%: Occurrence support (count vs. minimum, boosted by time span)

    Monotone non-decreasing in every input.
    """
    amount_score = _clamp(_finite(amount_consistency))
    regularity_score = _clamp(_finite(date_regularity))
    occurrence_score = calculate_occurrence_factor(occurrences, time_span, min_occurrences)

    score = (
        AMOUNT_WEIGHT * amount_score
        + REGULARITY_WEIGHT * regularity_score
        + OCCURRENCE_WEIGHT * occurrence_score
    )
    return round(_clamp(score), 4)


def amount_risk_factor(
    average_amount: Decimal,
    high_value_threshold: Decimal = HIGH_VALUE_THRESHOLD,
    medium_value_threshold: Decimal = MEDIUM_VALUE_THRESHOLD,
) -> float:
    amount = abs(average_amount)
    if amount >= high_value_threshold:
        return 1.0
    if amount >= medium_value_threshold:
        return 0.5
    return 0.0


def calculate_risk_score(
    pattern: TransactionPattern,
    now: DateLike,
    high_value_threshold: Decimal = HIGH_VALUE_THRESHOLD,
    medium_value_threshold: Decimal = MEDIUM_VALUE_THRESHOLD,
) -> float:
    """
    Risk of auto-confirming a candidate without review, from 0.0 (safe) to 1.0.

    Scoring weights:
    - 40%: Lack of confidence (1 - confidence)
    - 30%: Amount size (full at high_value_threshold, half at medium)
    - 20%: Thin history (fewer than 5 occurrences)
    - 10%: Freshly seen (first occurrence under 90 days before now)
    """
    confidence = _clamp(_finite(pattern.confidence))
    amount_factor = amount_risk_factor(pattern.average_amount, high_value_threshold, medium_value_threshold)
    occurrence_factor = 1.0 if pattern.occurrences < RISK_MIN_OCCURRENCES else 0.0

    first_seen: date = pattern.first_occurrence
    observed_days = (as_date(now) - first_seen).days
    recency_factor = 1.0 if observed_days < RISK_RECENT_WINDOW_DAYS else 0.0

    score = (
        RISK_CONFIDENCE_WEIGHT * (1.0 - confidence)
        + RISK_AMOUNT_WEIGHT * amount_factor
        + RISK_OCCURRENCE_WEIGHT * occurrence_factor
        + RISK_RECENCY_WEIGHT * recency_factor
    )
    return round(_clamp(score), 4)
