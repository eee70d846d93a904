"""SQLAlchemy ORM models for the transaction ledger and recurring payments"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Date, Numeric, Text, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class TransactionRecord(Base):
    """Ledger transaction (read-only to the engine)"""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Text, nullable=False, index=True)
    account_id = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    amount = Column(Numeric(12, 2), nullable=False)
    transaction_date = Column(Date, nullable=False)
    category_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (Index("ix_transactions_user_date", "user_id", "transaction_date"),)


class RecurringPaymentRecord(Base):
    """Confirmed recurring payment; cancelled rows stay with is_active=False"""

    __tablename__ = "recurring_payments"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(Text, nullable=False, index=True)
    account_id = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    frequency = Column(Text, nullable=False)
    next_due_date = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="pending")
    is_active = Column(Boolean, nullable=False, default=True)
    category_id = Column(Text, nullable=True)
    reminder_days = Column(Text, nullable=False, default="1,3,7")
    last_paid_on = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
