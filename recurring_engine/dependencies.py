"""Dependency wiring for batch jobs that embed the engine"""

from sqlalchemy.orm import Session

from recurring_engine.config import settings
from recurring_engine.infrastructure.clients.notifications import NotificationClient
from recurring_engine.infrastructure.database.repositories import SqlRecurringPaymentStore, SqlTransactionStore
from recurring_engine.infrastructure.observability.logging import setup_logging
from recurring_engine.services.detection import RecurringPaymentService
from recurring_engine.services.monitor import PaymentMonitor


def configure_logging() -> None:
    """Install structured logging at the configured level"""
    setup_logging(settings.log_level)


def get_notification_client() -> NotificationClient:
    """Provide notification service client instance"""
    return NotificationClient()


def get_recurring_payment_service(db: Session, sender: NotificationClient | None = None) -> RecurringPaymentService:
    """Detection service backed by SQL stores, notifying through the payment monitor"""
    return RecurringPaymentService(
        transaction_store=SqlTransactionStore(db),
        payment_store=SqlRecurringPaymentStore(db),
        settings=settings,
        notifier=get_payment_monitor(db, sender),
    )


def get_payment_monitor(db: Session, sender: NotificationClient | None = None) -> PaymentMonitor:
    """Payment monitor backed by the SQL payment store and the HTTP notification client"""
    return PaymentMonitor(
        payment_store=SqlRecurringPaymentStore(db),
        notification_sender=sender or get_notification_client(),
        settings=settings,
    )
