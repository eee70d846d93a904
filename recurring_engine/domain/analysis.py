"""Recurring cost analysis - normalizes confirmed payments to common periods"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Mapping, Optional

from recurring_engine.domain.models import (
    FREQUENCIES,
    CategoryCost,
    CostAnalysis,
    FrequencyCost,
    RecurringPayment,
)
from recurring_engine.utils.date_utils import monthly_equivalent_factor

CENTS = Decimal("0.01")
UNCATEGORIZED = "uncategorized"


def to_monthly_amount(amount: Decimal, frequency: str) -> Decimal:
    """Unrounded monthly equivalent of one payment"""
    return abs(amount) * monthly_equivalent_factor(frequency)


def _cents(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def summarize_recurring_costs(
    payments: Iterable[RecurringPayment],
    category_names: Optional[Mapping[str, str]] = None,
) -> CostAnalysis:
    """
    Total recurring spend for active payments.

    Example:
        $12/week + $30/quarter -> 52.00 + 10.00 = $62.00/month
    """
    category_names = category_names or {}
    active = [p for p in payments if p.is_active]

    monthly_total = Decimal("0")
    by_category: Dict[str, Decimal] = {}
    by_frequency = {frequency: FrequencyCost() for frequency in FREQUENCIES}

    for payment in active:
        monthly = to_monthly_amount(payment.amount, payment.frequency)
        monthly_total += monthly

        category_id = payment.category_id or UNCATEGORIZED
        by_category[category_id] = by_category.get(category_id, Decimal("0")) + monthly

        bucket = by_frequency.setdefault(payment.frequency, FrequencyCost())
        bucket.count += 1
        bucket.total_amount = _cents(bucket.total_amount + abs(payment.amount))

    category_breakdown = []
    for category_id, monthly in by_category.items():
        percentage = float(monthly / monthly_total * 100) if monthly_total else 0.0
        category_breakdown.append(
            CategoryCost(
                category_id=category_id,
                category_name=category_names.get(category_id, category_id),
                monthly_amount=_cents(monthly),
                quarterly_amount=_cents(monthly * 3),
                yearly_amount=_cents(monthly * 12),
                percentage=round(percentage, 2),
            )
        )
    category_breakdown.sort(key=lambda c: (-c.monthly_amount, c.category_id))

    return CostAnalysis(
        monthly_total=_cents(monthly_total),
        quarterly_total=_cents(monthly_total * 3),
        yearly_total=_cents(monthly_total * 12),
        category_breakdown=category_breakdown,
        frequency_breakdown=by_frequency,
    )
