"""Collaborator interfaces the engine depends on"""

from datetime import date
from typing import Any, Dict, List, Optional, Protocol

from recurring_engine.domain.models import RecurringPayment, Transaction


class TransactionStore(Protocol):
    def get_transactions(self, user_id: str, since: date) -> List[Transaction]:
        """Transactions for a user dated on or after `since`"""
        ...


class RecurringPaymentStore(Protocol):
    """CRUD for recurring payments, always scoped by user_id"""

    def list_active(self, user_id: str) -> List[RecurringPayment]:
        ...

    def get(self, user_id: str, payment_id: str) -> Optional[RecurringPayment]:
        ...

    def create(self, payment: RecurringPayment) -> RecurringPayment:
        ...

    def save(self, payment: RecurringPayment) -> RecurringPayment:
        ...


class NotificationSender(Protocol):
    async def send(self, user_id: str, payload: Dict[str, Any]) -> None:
        ...
