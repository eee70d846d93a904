"""Pydantic schemas for detection settings and user-supplied payment data"""

from datetime import date
from decimal import Decimal
from typing import Literal, Optional, Tuple, Union, List

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from recurring_engine.config import Settings, settings
from recurring_engine.domain.models import DEFAULT_REMINDER_DAYS

FrequencyField = Literal["weekly", "monthly", "quarterly", "yearly"]


def parse_reminder_days(value: Union[str, List[int], Tuple[int, ...], None]) -> Tuple[int, ...]:
    """Accept "1,3,7" or an iterable of ints; return a sorted set of positive days"""
    if value is None:
        return DEFAULT_REMINDER_DAYS
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(",") if part.strip()]
        try:
            days = [int(part) for part in parts]
        except ValueError as e:
            raise ValueError(f"Invalid reminder days: {value!r}") from e
    else:
        days = [int(day) for day in value]

    if any(day <= 0 for day in days):
        raise ValueError("Reminder days must be positive integers")
    return tuple(sorted(set(days)))


class PatternDetectionConfig(BaseModel):
    """Tuning knobs for one detection pass"""

    min_occurrences: int = Field(3, ge=2, description="Minimum transactions per candidate")
    amount_tolerance_percent: float = Field(5.0, ge=0, le=50)
    date_variance_days: int = Field(3, ge=0, le=7)
    lookback_months: int = Field(12, ge=1, le=24)
    confidence_threshold: float = Field(0.7, ge=0.1, le=1.0)

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "PatternDetectionConfig":
        source = source or settings
        return cls(
            min_occurrences=source.min_occurrences,
            amount_tolerance_percent=source.amount_tolerance_percent,
            date_variance_days=source.date_variance_days,
            lookback_months=source.lookback_months,
            confidence_threshold=source.confidence_threshold,
        )


class RecurringPaymentCreate(BaseModel):
    """Fields for confirming a candidate into a recurring payment"""

    name: str = Field(..., min_length=1, description="Payment name")
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    frequency: FrequencyField
    next_due_date: date
    category_id: Optional[str] = None
    reminder_days: Tuple[int, ...] = DEFAULT_REMINDER_DAYS

    @field_validator("reminder_days", mode="before")
    @classmethod
    def _parse_reminder_days(cls, value):
        return parse_reminder_days(value)


class RecurringPaymentUpdate(BaseModel):
    """
    Partial user edit of a recurring payment.

    Omitted fields are left unchanged. Only category_id may be cleared with
    an explicit null.
    """

    name: Optional[str] = Field(None, min_length=1)
    amount: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    frequency: Optional[FrequencyField] = None
    next_due_date: Optional[date] = None
    category_id: Optional[str] = None
    reminder_days: Optional[Tuple[int, ...]] = None
    is_active: Optional[bool] = None

    @field_validator("name", "amount", "frequency", "next_due_date", "is_active", mode="before")
    @classmethod
    def _reject_null(cls, value, info: ValidationInfo):
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value

    @field_validator("reminder_days", mode="before")
    @classmethod
    def _parse_reminder_days(cls, value):
        if value is None:
            raise ValueError("reminder_days cannot be null")
        return parse_reminder_days(value)
