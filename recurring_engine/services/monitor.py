"""Payment monitor - due/overdue alerts and best-effort notification dispatch"""

import asyncio
import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from recurring_engine.config import Settings, settings as default_settings
from recurring_engine.domain.models import (
    Alert,
    NotificationSummary,
    RecurringPayment,
    RecurringPaymentDetection,
)
from recurring_engine.domain.monitoring import collect_alerts, next_status
from recurring_engine.domain.ports import NotificationSender, RecurringPaymentStore
from recurring_engine.infrastructure.observability.logging import log_notification_failure
from recurring_engine.infrastructure.observability.metrics import notification_failure_counter, record_alerts
from recurring_engine.utils.date_utils import DateLike

CENTS = Decimal("0.01")


def build_notification_payload(alert: Alert) -> Dict[str, Any]:
    """Notification service payload for one alert"""
    metadata: Dict[str, Any] = {
        "paymentId": alert.payment_id,
        "paymentName": alert.payment_name,
        "amount": str(alert.amount),
        "dueDate": alert.due_date.isoformat(),
    }

    if alert.type == "overdue":
        metadata["daysOverdue"] = alert.days_overdue
        metadata["notificationType"] = "recurring_payment_missed"
        return {
            "title": f"Overdue Payment: {alert.payment_name}",
            "message": alert.message,
            "type": "warning",
            "priority": alert.priority,
            "channels": ["inApp", "email", "push"],
            "metadata": metadata,
        }

    metadata["daysUntilDue"] = alert.days_until_due
    metadata["notificationType"] = "recurring_payment_due"
    return {
        "title": f"Upcoming Payment: {alert.payment_name}",
        "message": alert.message,
        "type": "info",
        "priority": alert.priority,
        "channels": ["inApp", "email"],
        "metadata": metadata,
    }


def build_pattern_detected_payload(detection: RecurringPaymentDetection) -> Dict[str, Any]:
    """Payload suggesting a newly detected candidate to the user"""
    pattern = detection.pattern
    amount = pattern.average_amount.quantize(CENTS)
    confidence = round(pattern.confidence * 100)
    return {
        "title": "New Recurring Payment Pattern Detected",
        "message": (
            f"We detected a potential recurring payment for {detection.suggested_name} "
            f"({amount}) with {confidence}% confidence."
        ),
        "type": "info",
        "priority": "medium",
        "channels": ["inApp"],
        "metadata": {
            "patternKey": pattern.key,
            "merchantName": detection.suggested_name,
            "amount": str(amount),
            "frequency": pattern.frequency,
            "confidence": confidence,
            "occurrences": pattern.occurrences,
            "intervalMatchRatio": round(pattern.interval_match_ratio, 2),
            "riskScore": detection.risk_score,
            "notificationType": "pattern_detected",
        },
    }


def build_payment_confirmation_payload(
    payment: RecurringPayment,
    processed_on: date,
    transaction_id: Optional[str] = None,
) -> Dict[str, Any]:
    """Payload confirming that one cycle of a recurring payment was paid"""
    return {
        "title": f"Payment Processed: {payment.name}",
        "message": f"Your recurring payment of {payment.amount} has been processed successfully.",
        "type": "success",
        "priority": "low",
        "channels": ["inApp"],
        "metadata": {
            "paymentId": payment.id,
            "paymentName": payment.name,
            "amount": str(payment.amount),
            "processedDate": processed_on.isoformat(),
            "transactionId": transaction_id,
            "notificationType": "recurring_payment_confirmed",
        },
    }


class PaymentMonitor:
    """Scans a user's active recurring payments and raises due/overdue alerts"""

    def __init__(
        self,
        payment_store: RecurringPaymentStore,
        notification_sender: NotificationSender,
        settings: Optional[Settings] = None,
    ):
        self.payment_store = payment_store
        self.notification_sender = notification_sender
        self.settings = settings or default_settings

    def get_pending_alerts(self, user_id: str, now: DateLike) -> List[Alert]:
        """
        Alerts for every active payment due within the alert window or already overdue.

        Raises:
            StoreError: When the payment store read fails
        """
        payments = self.payment_store.list_active(user_id)
        return collect_alerts(payments, now, self.settings.alert_window_days)

    def refresh_statuses(self, user_id: str, now: DateLike) -> List[RecurringPayment]:
        """Persist status transitions (overdue / back to pending); returns changed payments"""
        changed = []
        for payment in self.payment_store.list_active(user_id):
            status = next_status(payment, now, self.settings.alert_window_days)
            if status == payment.status:
                continue

            logging.info(
                "Recurring payment status changed",
                extra={
                    "user_id": user_id,
                    "payment_id": payment.id,
                    "from_status": payment.status,
                    "to_status": status,
                },
            )
            changed.append(self.payment_store.save(replace(payment, status=status)))
        return changed

    async def _dispatch(self, user_id: str, payload: Dict[str, Any], **context: Any) -> bool:
        try:
            await self.notification_sender.send(user_id, payload)
            return True
        except Exception as e:
            # One failed send must not suppress the remaining notifications
            notification_failure_counter.inc()
            log_notification_failure(user_id, payload["metadata"]["notificationType"], e, **context)
            return False

    async def process_user_notifications(self, user_id: str, now: DateLike) -> NotificationSummary:
        """
        Send one notification per pending alert, concurrently and best-effort.

        Dispatch failures are logged and counted, never raised or retried.
        Store read failures propagate.
        """
        alerts = self.get_pending_alerts(user_id, now)
        record_alerts(alerts)

        results = await asyncio.gather(
            *(
                self._dispatch(user_id, build_notification_payload(alert), payment_id=alert.payment_id)
                for alert in alerts
            )
        )
        delivered = sum(1 for ok in results if ok)

        summary = NotificationSummary(
            upcoming_reminders=sum(1 for a in alerts if a.type == "due_soon"),
            overdue_alerts=sum(1 for a in alerts if a.type == "overdue"),
            delivered=delivered,
            failed=len(alerts) - delivered,
        )

        logging.info(
            "Notification pass completed",
            extra={
                "user_id": user_id,
                "step": "notifications_complete",
                "total_alerts": summary.total_alerts,
                "delivered": summary.delivered,
                "failed": summary.failed,
            },
        )
        return summary

    async def notify_patterns_detected(
        self,
        user_id: str,
        detections: Sequence[RecurringPaymentDetection],
    ) -> int:
        """Suggest every new candidate to the user; returns how many were delivered"""
        new_detections = [d for d in detections if d.is_new_pattern]
        results = await asyncio.gather(
            *(
                self._dispatch(user_id, build_pattern_detected_payload(d), pattern_key=d.pattern.key)
                for d in new_detections
            )
        )
        return sum(1 for ok in results if ok)

    async def notify_payment_processed(
        self,
        user_id: str,
        payment: RecurringPayment,
        processed_on: date,
        transaction_id: Optional[str] = None,
    ) -> bool:
        payload = build_payment_confirmation_payload(payment, processed_on, transaction_id)
        return await self._dispatch(user_id, payload, payment_id=payment.id)
