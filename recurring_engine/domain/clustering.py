"""Transaction clustering - groups raw transactions into recurring-payment candidates"""

from collections import Counter, defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from recurring_engine.domain.frequency import analyze_frequency_pattern
from recurring_engine.domain.merchant import extract_merchant_pattern
from recurring_engine.domain.models import RecurringPayment, Transaction, TransactionPattern
from recurring_engine.domain.scoring import calculate_amount_consistency, calculate_pattern_confidence
from recurring_engine.schemas import PatternDetectionConfig
from recurring_engine.utils.date_utils import DateLike, as_date, lookback_start, predict_next_payment_date

GroupKey = Tuple[str, str]

EXISTING_MATCH_TOLERANCE = Decimal("0.10")


def bucket_transactions(
    transactions: Iterable[Transaction],
    config: PatternDetectionConfig,
    now: DateLike,
) -> Dict[GroupKey, List[Transaction]]:
    """
    Single hashed pass: (account_id, merchant_pattern) -> transactions.

    Drops transactions outside the lookback window (including future-dated
    ones) and those whose description normalizes to an empty pattern.
    """
    cutoff = lookback_start(now, config.lookback_months)
    today = as_date(now)
    groups: Dict[GroupKey, List[Transaction]] = defaultdict(list)

    for txn in transactions:
        if txn.date < cutoff or txn.date > today:
            continue
        merchant_pattern = extract_merchant_pattern(txn.description)
        if not merchant_pattern:
            continue
        groups[(txn.account_id, merchant_pattern)].append(txn)

    return groups


def most_common_category(transactions: Sequence[Transaction]) -> Optional[str]:
    """Most frequent category; ties go to the first one seen"""
    counts = Counter(t.category_id for t in transactions if t.category_id)
    if not counts:
        return None
    return counts.most_common(1)[0][0]


def analyze_group(
    account_id: str,
    merchant_pattern: str,
    transactions: Sequence[Transaction],
    config: PatternDetectionConfig,
) -> TransactionPattern:
    """Score one cluster; callers filter on confidence"""
    ordered = sorted(transactions, key=lambda t: (t.date, t.id))
    amounts = [abs(t.amount) for t in ordered]
    dates = [t.date for t in ordered]

    average_amount = sum(amounts, Decimal("0")) / len(amounts)
    amount_consistency = calculate_amount_consistency(
        amounts, average_amount, config.amount_tolerance_percent
    )

    frequency = analyze_frequency_pattern(dates, config.min_occurrences, config.date_variance_days)

    confidence = calculate_pattern_confidence(
        amount_consistency=amount_consistency,
        date_regularity=frequency.regularity,
        occurrences=len(ordered),
        time_span=(dates[-1] - dates[0]).days,
        min_occurrences=config.min_occurrences,
    )

    return TransactionPattern(
        account_id=account_id,
        merchant_pattern=merchant_pattern,
        amounts=amounts,
        dates=dates,
        frequency=frequency.detected_frequency,
        confidence=confidence,
        average_amount=average_amount,
        last_occurrence=dates[-1],
        next_expected_date=predict_next_payment_date(dates[-1], frequency.detected_frequency),
        category_id=most_common_category(ordered),
        regularity=frequency.regularity,
        interval_match_ratio=frequency.interval_match_ratio,
        is_conclusive=frequency.is_conclusive,
    )


def group_transactions_by_pattern(
    transactions: Iterable[Transaction],
    config: PatternDetectionConfig,
    now: DateLike,
) -> List[TransactionPattern]:
    """
    Detect recurring-payment candidates in a batch of transactions.

    Flow:
    1. Bucket by (account, merchant pattern) within the lookback window
    2. Keep buckets with at least min_occurrences transactions
    3. Score each bucket (amount consistency, regularity, occurrences)
    4. Keep candidates whose confidence meets confidence_threshold

    Linear in the number of transactions plus a sort per bucket.
    Returns candidates ordered by confidence (highest first).
    """
    groups = bucket_transactions(transactions, config, now)

    patterns = []
    for (account_id, merchant_pattern), group in groups.items():
        if len(group) < config.min_occurrences:
            continue

        pattern = analyze_group(account_id, merchant_pattern, group, config)
        if pattern.confidence >= config.confidence_threshold:
            patterns.append(pattern)

    patterns.sort(key=lambda p: (-p.confidence, p.key))
    return patterns


def generate_payment_name(pattern: TransactionPattern) -> str:
    """Title-cased merchant plus frequency, e.g. Netflix.com (Monthly)"""
    merchant_name = " ".join(word[:1].upper() + word[1:] for word in pattern.merchant_pattern.split(" "))
    return f"{merchant_name} ({pattern.frequency.capitalize()})"


def find_matching_existing_payment(
    pattern: TransactionPattern,
    existing_payments: Iterable[RecurringPayment],
) -> Optional[RecurringPayment]:
    """Active payment on the same account whose amount is within 10% of the pattern's average"""
    for payment in existing_payments:
        if payment.account_id != pattern.account_id:
            continue
        tolerance = abs(payment.amount) * EXISTING_MATCH_TOLERANCE
        if abs(pattern.average_amount - abs(payment.amount)) <= tolerance:
            return payment
    return None
