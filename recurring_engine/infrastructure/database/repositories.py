"""Data access layer for transactions and recurring payments"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from recurring_engine.domain.exceptions import StoreError
from recurring_engine.domain.models import RecurringPayment, Transaction
from recurring_engine.infrastructure.database.models import RecurringPaymentRecord, TransactionRecord
from recurring_engine.infrastructure.observability.metrics import store_failures_counter


def _format_reminder_days(days) -> str:
    return ",".join(str(day) for day in days)


def _parse_reminder_days(raw: Optional[str]) -> tuple:
    if not raw:
        return ()
    return tuple(sorted({int(part) for part in raw.split(",") if part.strip()}))


def _to_payment(record: RecurringPaymentRecord) -> RecurringPayment:
    return RecurringPayment(
        id=record.id,
        user_id=record.user_id,
        account_id=record.account_id,
        name=record.name,
        amount=Decimal(record.amount),
        frequency=record.frequency,
        next_due_date=record.next_due_date,
        status=record.status,
        is_active=record.is_active,
        category_id=record.category_id,
        reminder_days=_parse_reminder_days(record.reminder_days),
        last_paid_on=record.last_paid_on,
    )


class SqlTransactionStore:
    """Read-only transaction ledger queries"""

    def __init__(self, db: Session):
        self.db = db

    def get_transactions(self, user_id: str, since: date) -> List[Transaction]:
        """
        Fetch a user's transactions dated on or after `since`, oldest first.

        Raises:
            StoreError: When the query fails
        """
        try:
            records = (
                self.db.query(TransactionRecord)
                .filter(
                    TransactionRecord.user_id == user_id,
                    TransactionRecord.transaction_date >= since,
                )
                .order_by(TransactionRecord.transaction_date, TransactionRecord.id)
                .all()
            )
        except SQLAlchemyError as e:
            store_failures_counter.labels(store="transactions").inc()
            raise StoreError(f"Transaction query failed: {e}") from e

        return [
            Transaction(
                id=r.id,
                account_id=r.account_id,
                description=r.description,
                amount=Decimal(r.amount),
                date=r.transaction_date,
                category_id=r.category_id,
                user_id=r.user_id,
            )
            for r in records
        ]


class SqlRecurringPaymentStore:
    """Repository for recurring payments; every query is scoped by user_id"""

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, action: str, error: SQLAlchemyError) -> StoreError:
        self.db.rollback()
        store_failures_counter.labels(store="recurring_payments").inc()
        return StoreError(f"Recurring payment {action} failed: {error}")

    def _find(self, user_id: str, payment_id: str) -> Optional[RecurringPaymentRecord]:
        return (
            self.db.query(RecurringPaymentRecord)
            .filter(
                RecurringPaymentRecord.id == payment_id,
                RecurringPaymentRecord.user_id == user_id,
            )
            .first()
        )

    def list_active(self, user_id: str) -> List[RecurringPayment]:
        """Active payments ordered by next due date"""
        try:
            records = (
                self.db.query(RecurringPaymentRecord)
                .filter(
                    RecurringPaymentRecord.user_id == user_id,
                    RecurringPaymentRecord.is_active.is_(True),
                )
                .order_by(RecurringPaymentRecord.next_due_date, RecurringPaymentRecord.id)
                .all()
            )
        except SQLAlchemyError as e:
            raise self._fail("query", e) from e
        return [_to_payment(r) for r in records]

    def get(self, user_id: str, payment_id: str) -> Optional[RecurringPayment]:
        try:
            record = self._find(user_id, payment_id)
        except SQLAlchemyError as e:
            raise self._fail("lookup", e) from e
        return _to_payment(record) if record else None

    def create(self, payment: RecurringPayment) -> RecurringPayment:
        """Insert and commit; returns the stored payment with its id"""
        record = RecurringPaymentRecord(
            user_id=payment.user_id,
            account_id=payment.account_id,
            name=payment.name,
            amount=payment.amount,
            frequency=payment.frequency,
            next_due_date=payment.next_due_date,
            status=payment.status,
            is_active=payment.is_active,
            category_id=payment.category_id,
            reminder_days=_format_reminder_days(payment.reminder_days),
            last_paid_on=payment.last_paid_on,
        )
        if payment.id:
            record.id = payment.id

        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as e:
            raise self._fail("insert", e) from e
        return _to_payment(record)

    def save(self, payment: RecurringPayment) -> RecurringPayment:
        """
        Persist edits to an existing payment.

        Raises:
            StoreError: When the payment does not exist for this user or the write fails
        """
        try:
            record = self._find(payment.user_id, payment.id)
            if record is None:
                raise StoreError(f"Recurring payment {payment.id} not found")

            record.account_id = payment.account_id
            record.name = payment.name
            record.amount = payment.amount
            record.frequency = payment.frequency
            record.next_due_date = payment.next_due_date
            record.status = payment.status
            record.is_active = payment.is_active
            record.category_id = payment.category_id
            record.reminder_days = _format_reminder_days(payment.reminder_days)
            record.last_paid_on = payment.last_paid_on

            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as e:
            raise self._fail("update", e) from e
        return _to_payment(record)
