"""Integration tests for the payment monitor notification pass"""

import pytest
from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from recurring_engine.dependencies import get_payment_monitor
from recurring_engine.domain.exceptions import NotificationDeliveryError, StoreError
from recurring_engine.domain.models import RecurringPayment, RecurringPaymentDetection, TransactionPattern
from recurring_engine.domain.monitoring import build_alert
from recurring_engine.infrastructure.database.repositories import SqlRecurringPaymentStore
from recurring_engine.services.monitor import (
    PaymentMonitor,
    build_notification_payload,
    build_pattern_detected_payload,
    build_payment_confirmation_payload,
)


@pytest.fixture
def payments(make_payment):
    return [
        make_payment("rp_late", name="Rent", amount=Decimal("1200.00"), next_due_date=date(2025, 6, 10)),
        make_payment("rp_soon", name="Netflix", next_due_date=date(2025, 6, 16)),
        make_payment("rp_far", name="Insurance", next_due_date=date(2025, 7, 30)),
        make_payment("rp_off", name="Old gym", next_due_date=date(2025, 6, 12), is_active=False),
    ]


async def test_one_failed_send_does_not_block_others(payments, payment_store_factory, sender_factory, now):
    sender = sender_factory(failing_payment_ids={"rp_late"})
    monitor = PaymentMonitor(payment_store_factory(payments), sender)

    summary = await monitor.process_user_notifications("user_1", now)

    assert summary.upcoming_reminders == 1
    assert summary.overdue_alerts == 1
    assert summary.total_alerts == 2
    assert summary.delivered == 1
    assert summary.failed == 1

    [(user_id, payload)] = sender.sent
    assert user_id == "user_1"
    assert payload["metadata"]["paymentId"] == "rp_soon"


async def test_all_sends_delivered(payments, payment_store_factory, sender_factory, now):
    sender = sender_factory()
    monitor = PaymentMonitor(payment_store_factory(payments), sender)

    summary = await monitor.process_user_notifications("user_1", now)

    assert (summary.delivered, summary.failed) == (2, 0)
    assert [p["metadata"]["paymentId"] for _, p in sender.sent] == ["rp_late", "rp_soon"]


async def test_delivery_errors_from_client_are_counted(payments, payment_store_factory, now):
    sender = MagicMock()
    sender.send = AsyncMock(side_effect=NotificationDeliveryError("Notification service error: 503"))
    monitor = PaymentMonitor(payment_store_factory(payments), sender)

    summary = await monitor.process_user_notifications("user_1", now)

    assert summary.failed == 2
    assert sender.send.await_count == 2


async def test_no_alerts_sends_nothing(make_payment, payment_store_factory, sender_factory, now):
    sender = sender_factory()
    monitor = PaymentMonitor(payment_store_factory([make_payment(next_due_date=date(2025, 8, 1))]), sender)

    summary = await monitor.process_user_notifications("user_1", now)

    assert summary.total_alerts == 0
    assert sender.sent == []


async def test_store_read_failure_propagates(sender_factory, now):
    store = MagicMock()
    store.list_active.side_effect = StoreError("database unavailable")
    monitor = PaymentMonitor(store, sender_factory())

    with pytest.raises(StoreError):
        await monitor.process_user_notifications("user_1", now)


def test_get_pending_alerts(payments, payment_store_factory, sender_factory, now):
    monitor = PaymentMonitor(payment_store_factory(payments), sender_factory())

    alerts = monitor.get_pending_alerts("user_1", now)

    assert [(a.payment_id, a.type, a.priority) for a in alerts] == [
        ("rp_late", "overdue", "high"),
        ("rp_soon", "due_soon", "high"),
    ]


def test_refresh_statuses_persists_transitions(make_payment, payment_store_factory, sender_factory, now):
    store = payment_store_factory(
        [
            make_payment("rp_late", next_due_date=date(2025, 6, 10)),
            make_payment("rp_paid", status="paid", next_due_date=date(2025, 6, 20)),
            make_payment("rp_fixed", status="overdue", next_due_date=date(2025, 7, 10)),
            make_payment("rp_fine", next_due_date=date(2025, 7, 1)),
        ]
    )
    monitor = PaymentMonitor(store, sender_factory())

    changed = monitor.refresh_statuses("user_1", now)

    assert {p.id: p.status for p in changed} == {
        "rp_late": "overdue",
        "rp_paid": "pending",
        "rp_fixed": "pending",
    }
    assert [p.id for p in store.saved] == ["rp_late", "rp_paid", "rp_fixed"]
    assert store.payments["rp_fine"].status == "pending"


def test_overdue_payload(make_payment, now):
    alert = build_alert(make_payment(name="Rent", amount=Decimal("1200.00"), next_due_date=date(2025, 6, 10)), now)

    payload = build_notification_payload(alert)

    assert payload["title"] == "Overdue Payment: Rent"
    assert payload["type"] == "warning"
    assert payload["priority"] == "high"
    assert payload["channels"] == ["inApp", "email", "push"]
    assert payload["metadata"] == {
        "paymentId": "rp_1",
        "paymentName": "Rent",
        "amount": "1200.00",
        "dueDate": "2025-06-10",
        "daysOverdue": 5,
        "notificationType": "recurring_payment_missed",
    }


def test_due_soon_payload(make_payment, now):
    alert = build_alert(make_payment(next_due_date=date(2025, 6, 18)), now)

    payload = build_notification_payload(alert)

    assert payload["title"] == "Upcoming Payment: Netflix"
    assert payload["message"] == "Netflix is due in 3 days"
    assert payload["type"] == "info"
    assert payload["priority"] == "medium"
    assert payload["channels"] == ["inApp", "email"]
    assert payload["metadata"]["daysUntilDue"] == 3
    assert payload["metadata"]["notificationType"] == "recurring_payment_due"


def _detection(merchant="netflix.com", account_id="acc_1", existing_payment_id=None):
    dates = [date(2025, 3, 1), date(2025, 4, 1), date(2025, 5, 1), date(2025, 6, 1)]
    pattern = TransactionPattern(
        account_id=account_id,
        merchant_pattern=merchant,
        amounts=[Decimal("15.99")] * 4,
        dates=dates,
        frequency="monthly",
        confidence=0.9234,
        average_amount=Decimal("15.99"),
        last_occurrence=dates[-1],
        next_expected_date=date(2025, 7, 1),
        interval_match_ratio=0.6667,
        is_conclusive=True,
    )
    return RecurringPaymentDetection(
        pattern=pattern,
        suggested_name="Netflix.com (Monthly)",
        suggested_category="cat_streaming",
        risk_score=0.0306,
        existing_payment_id=existing_payment_id,
    )


def test_pattern_detected_payload():
    payload = build_pattern_detected_payload(_detection())

    assert payload["title"] == "New Recurring Payment Pattern Detected"
    assert payload["message"] == (
        "We detected a potential recurring payment for Netflix.com (Monthly) (15.99) with 92% confidence."
    )
    assert payload["type"] == "info"
    assert payload["priority"] == "medium"
    assert payload["channels"] == ["inApp"]
    assert payload["metadata"] == {
        "patternKey": "acc_1:netflix.com",
        "merchantName": "Netflix.com (Monthly)",
        "amount": "15.99",
        "frequency": "monthly",
        "confidence": 92,
        "occurrences": 4,
        "intervalMatchRatio": 0.67,
        "riskScore": 0.0306,
        "notificationType": "pattern_detected",
    }


def test_payment_confirmation_payload(make_payment):
    payload = build_payment_confirmation_payload(make_payment(), date(2025, 7, 1), "tx_991")

    assert payload["title"] == "Payment Processed: Netflix"
    assert payload["message"] == "Your recurring payment of 15.99 has been processed successfully."
    assert payload["type"] == "success"
    assert payload["priority"] == "low"
    assert payload["channels"] == ["inApp"]
    assert payload["metadata"] == {
        "paymentId": "rp_1",
        "paymentName": "Netflix",
        "amount": "15.99",
        "processedDate": "2025-07-01",
        "transactionId": "tx_991",
        "notificationType": "recurring_payment_confirmed",
    }


async def test_notify_patterns_detected_skips_linked_candidates(payment_store_factory, sender_factory):
    sender = sender_factory(failing_pattern_keys={"acc_3:gym"})
    monitor = PaymentMonitor(payment_store_factory(), sender)
    detections = [
        _detection(),
        _detection("spotify", account_id="acc_2", existing_payment_id="rp_spotify"),
        _detection("gym", account_id="acc_3"),
    ]

    delivered = await monitor.notify_patterns_detected("user_1", detections)

    assert delivered == 1
    assert [p["metadata"]["patternKey"] for _, p in sender.sent] == ["acc_1:netflix.com"]


async def test_notify_payment_processed_reports_failure(make_payment, payment_store_factory):
    sender = MagicMock()
    sender.send = AsyncMock(side_effect=NotificationDeliveryError("Notification service unreachable"))
    monitor = PaymentMonitor(payment_store_factory(), sender)

    assert await monitor.notify_payment_processed("user_1", make_payment(), date(2025, 7, 1)) is False
    sender.send.assert_awaited_once()


@pytest.mark.integration
async def test_monitor_over_sql_store(db, sender_factory, now):
    store = SqlRecurringPaymentStore(db)
    late = store.create(
        RecurringPayment(
            id=None,
            user_id="user_1",
            account_id="acc_1",
            name="Rent",
            amount=Decimal("1200.00"),
            frequency="monthly",
            next_due_date=date(2025, 6, 12),
        )
    )
    sender = sender_factory()
    monitor = get_payment_monitor(db, sender)

    summary = await monitor.process_user_notifications("user_1", now)
    changed = monitor.refresh_statuses("user_1", now)

    assert summary.overdue_alerts == 1
    assert sender.sent[0][1]["metadata"]["paymentId"] == late.id
    assert [p.status for p in changed] == ["overdue"]
    assert store.get("user_1", late.id).status == "overdue"
