"""Due/overdue classification for confirmed recurring payments"""

from typing import Iterable, List, Optional

from recurring_engine.domain.models import Alert, MissedPayment, RecurringPayment
from recurring_engine.utils.date_utils import (
    DateLike,
    as_date,
    count_occurrences_through,
    days_until,
)

DEFAULT_ALERT_WINDOW_DAYS = 7
PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}


def _plural(days: int) -> str:
    return "day" if days == 1 else "days"


def due_soon_priority(days_until_due: int) -> str:
    """1 day -> high, 2-3 days -> medium, further out -> low"""
    if days_until_due <= 1:
        return "high"
    if days_until_due <= 3:
        return "medium"
    return "low"


def build_alert(
    payment: RecurringPayment,
    now: DateLike,
    window_days: int = DEFAULT_ALERT_WINDOW_DAYS,
) -> Optional[Alert]:
    """
    Classify one payment against now.

    Rules (days = ceil((next_due_date - now) / 1 day)):
    - days <= 0:           overdue, high priority
    - 0 < days <= window:  due_soon, priority by proximity
    - days > window:       no alert
    """
    days = days_until(payment.next_due_date, now)

    if days <= 0:
        days_overdue = abs(days)
        return Alert(
            type="overdue",
            payment_id=payment.id,
            payment_name=payment.name,
            priority="high",
            amount=payment.amount,
            due_date=as_date(payment.next_due_date),
            message=f"{payment.name} is {days_overdue} {_plural(days_overdue)} overdue",
            days_overdue=days_overdue,
        )

    if days <= window_days:
        return Alert(
            type="due_soon",
            payment_id=payment.id,
            payment_name=payment.name,
            priority=due_soon_priority(days),
            amount=payment.amount,
            due_date=as_date(payment.next_due_date),
            message=f"{payment.name} is due in {days} {_plural(days)}",
            days_until_due=days,
        )

    return None


def collect_alerts(
    payments: Iterable[RecurringPayment],
    now: DateLike,
    window_days: int = DEFAULT_ALERT_WINDOW_DAYS,
) -> List[Alert]:
    """Alerts for active payments; overdue first, then most urgent"""
    alerts = []
    for payment in payments:
        if not payment.is_active:
            continue
        alert = build_alert(payment, now, window_days)
        if alert is not None:
            alerts.append(alert)

    alerts.sort(
        key=lambda a: (
            0 if a.type == "overdue" else 1,
            -(a.days_overdue or 0),
            a.days_until_due or 0,
            PRIORITY_RANK[a.priority],
            a.payment_name,
        )
    )
    return alerts


def next_status(
    payment: RecurringPayment,
    now: DateLike,
    window_days: int = DEFAULT_ALERT_WINDOW_DAYS,
) -> str:
    """
    Status the monitor should record for a payment.

    Anything due at or before now is overdue. An overdue payment whose due
    date was moved into the future is pending again. A paid payment returns
    to pending once its next due date enters the alert window.
    """
    days = days_until(payment.next_due_date, now)
    if days <= 0:
        return "overdue"
    if payment.status == "overdue":
        return "pending"
    if payment.status == "paid" and days <= window_days:
        return "pending"
    return payment.status


def find_missed_payments(
    payments: Iterable[RecurringPayment],
    now: DateLike,
    grace_period_days: int = 3,
) -> List[MissedPayment]:
    """Unpaid active payments due at least grace_period_days ago, worst first"""
    today = as_date(now)
    missed = []

    for payment in payments:
        if not payment.is_active or payment.status == "paid":
            continue

        due = as_date(payment.next_due_date)
        days_overdue = (today - due).days
        if days_overdue < grace_period_days or days_overdue <= 0:
            continue

        missed.append(
            MissedPayment(
                payment_id=payment.id,
                payment_name=payment.name,
                expected_amount=payment.amount,
                expected_date=due,
                days_overdue=days_overdue,
                account_id=payment.account_id,
                missed_consecutive_payments=count_occurrences_through(due, today, payment.frequency),
            )
        )

    missed.sort(key=lambda m: (-m.days_overdue, m.payment_name))
    return missed
