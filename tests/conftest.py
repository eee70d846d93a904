"""Pytest fixtures for testing"""

import pytest
from dataclasses import replace
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Callable, Dict, Generator, List, Optional
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from dateutil.relativedelta import relativedelta
from recurring_engine.domain.exceptions import StoreError
from recurring_engine.domain.models import RecurringPayment, Transaction
from recurring_engine.infrastructure.database.models import Base


# Test database
TEST_DATABASE_URL = "sqlite://"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False}, poolclass=StaticPool)
TestingSessionLocal = sessionmaker(autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def now() -> datetime:
    """Fixed clock for deterministic tests"""
    return datetime(2025, 6, 15, 9, 30)


class InMemoryTransactionStore:
    def __init__(self, transactions: Optional[List[Transaction]] = None, error: Optional[Exception] = None):
        self.transactions = list(transactions or [])
        self.error = error
        self.calls = []

    def get_transactions(self, user_id: str, since: date) -> List[Transaction]:
        self.calls.append((user_id, since))
        if self.error:
            raise self.error
        return [t for t in self.transactions if t.date >= since]


class InMemoryPaymentStore:
    def __init__(self, payments: Optional[List[RecurringPayment]] = None):
        self.payments: Dict[str, RecurringPayment] = {}
        self.fail_writes = False
        self.saved: List[RecurringPayment] = []
        for payment in payments or []:
            self.payments[payment.id] = payment

    def list_active(self, user_id: str) -> List[RecurringPayment]:
        return [replace(p) for p in self.payments.values() if p.user_id == user_id and p.is_active]

    def get(self, user_id: str, payment_id: str) -> Optional[RecurringPayment]:
        payment = self.payments.get(payment_id)
        if payment is None or payment.user_id != user_id:
            return None
        return replace(payment)

    def create(self, payment: RecurringPayment) -> RecurringPayment:
        if self.fail_writes:
            raise StoreError("database unavailable")
        stored = replace(payment, id=payment.id or f"rp_{len(self.payments) + 1}")
        self.payments[stored.id] = stored
        return replace(stored)

    def save(self, payment: RecurringPayment) -> RecurringPayment:
        if self.fail_writes:
            raise StoreError("database unavailable")
        if payment.id not in self.payments:
            raise StoreError(f"Recurring payment {payment.id} not found")
        self.payments[payment.id] = replace(payment)
        self.saved.append(replace(payment))
        return replace(payment)


class RecordingSender:
    """Notification sender that records payloads and can fail for chosen payments or candidates"""

    def __init__(self, failing_payment_ids=(), failing_pattern_keys=()):
        self.failing_payment_ids = set(failing_payment_ids)
        self.failing_pattern_keys = set(failing_pattern_keys)
        self.sent = []

    async def send(self, user_id: str, payload: dict) -> None:
        metadata = payload["metadata"]
        if metadata.get("paymentId") in self.failing_payment_ids or metadata.get("patternKey") in self.failing_pattern_keys:
            raise RuntimeError("channel down")
        self.sent.append((user_id, payload))


@pytest.fixture
def transaction_store_factory() -> Callable[..., InMemoryTransactionStore]:
    return InMemoryTransactionStore


@pytest.fixture
def payment_store_factory() -> Callable[..., InMemoryPaymentStore]:
    return InMemoryPaymentStore


@pytest.fixture
def sender_factory() -> Callable[..., RecordingSender]:
    return RecordingSender


@pytest.fixture
def make_payment() -> Callable[..., RecurringPayment]:
    """Factory for recurring payments with sensible defaults"""

    def _make(payment_id: str = "rp_1", **overrides) -> RecurringPayment:
        values = dict(
            id=payment_id,
            user_id="user_1",
            account_id="acc_1",
            name="Netflix",
            amount=Decimal("15.99"),
            frequency="monthly",
            next_due_date=date(2025, 7, 1),
            status="pending",
            is_active=True,
            category_id="cat_streaming",
        )
        values.update(overrides)
        return RecurringPayment(**values)

    return _make


@pytest.fixture
def monthly_series() -> Callable[..., List[Transaction]]:
    """Build a run of monthly charges ending on `last`"""

    def _series(
        description: str,
        amount: str,
        count: int,
        last: date,
        account_id: str = "acc_1",
        category_id: Optional[str] = "cat_streaming",
        step: relativedelta = relativedelta(months=1),
        prefix: str = "tx",
    ) -> List[Transaction]:
        transactions = []
        for i in range(count):
            transactions.append(
                Transaction(
                    id=f"{prefix}_{account_id}_{i}",
                    account_id=account_id,
                    description=description,
                    amount=Decimal(amount),
                    date=last - step * (count - 1 - i),
                    category_id=category_id,
                    user_id="user_1",
                )
            )
        return transactions

    return _series


@pytest.fixture
def sample_transactions(monthly_series) -> List[Transaction]:
    """Six months of a streaming subscription plus noisy one-off spending"""
    last = date(2025, 6, 1)
    transactions = monthly_series("NETFLIX.COM PAYMENT", "-15.99", 6, last)

    for i, day in enumerate(range(3, 150, 23)):
        transactions.append(
            Transaction(
                id=f"misc_{i}",
                account_id="acc_1",
                description=f"CORNER STORE {i}",
                amount=Decimal("-7.50") - i,
                date=last - timedelta(days=day),
                category_id="cat_groceries",
                user_id="user_1",
            )
        )
    return transactions
