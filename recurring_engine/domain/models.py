"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Literal, Optional, Tuple

Frequency = Literal["weekly", "monthly", "quarterly", "yearly"]
PaymentStatus = Literal["pending", "paid", "overdue"]
AlertType = Literal["due_soon", "overdue"]
Priority = Literal["high", "medium", "low"]

FREQUENCIES: Tuple[str, ...] = ("weekly", "monthly", "quarterly", "yearly")
DEFAULT_REMINDER_DAYS: Tuple[int, ...] = (1, 3, 7)


@dataclass(frozen=True)
class Transaction:
    """Ledger transaction; amount is signed (negative = expense)"""

    id: str
    account_id: str
    description: str
    amount: Decimal
    date: date
    category_id: Optional[str] = None
    user_id: Optional[str] = None


@dataclass
class FrequencyAnalysis:
    """Result of classifying a sequence of dates"""

    detected_frequency: str
    regularity: float
    mean_gap: float = 0.0
    coefficient_of_variation: float = 0.0
    interval_match_ratio: float = 0.0
    is_conclusive: bool = False


@dataclass
class TransactionPattern:
    """Transient recurring-payment candidate built from one transaction cluster"""

    account_id: str
    merchant_pattern: str
    amounts: List[Decimal]
    dates: List[date]
    frequency: str
    confidence: float
    average_amount: Decimal
    last_occurrence: date
    next_expected_date: date
    category_id: Optional[str] = None
    regularity: float = 0.0
    interval_match_ratio: float = 0.0
    is_conclusive: bool = False

    def __post_init__(self) -> None:
        if not self.dates or len(self.amounts) != len(self.dates):
            raise ValueError("amounts and dates must be parallel and non-empty")

    @property
    def key(self) -> str:
        return f"{self.account_id}:{self.merchant_pattern}"

    @property
    def occurrences(self) -> int:
        return len(self.dates)

    @property
    def first_occurrence(self) -> date:
        return self.dates[0]

    @property
    def time_span_days(self) -> int:
        return (self.dates[-1] - self.dates[0]).days


@dataclass
class RecurringPayment:
    """Confirmed recurring payment owned by the payment store"""

    id: Optional[str]
    user_id: str
    account_id: str
    name: str
    amount: Decimal
    frequency: str
    next_due_date: date
    status: str = "pending"
    is_active: bool = True
    category_id: Optional[str] = None
    reminder_days: Tuple[int, ...] = DEFAULT_REMINDER_DAYS
    last_paid_on: Optional[date] = None


@dataclass
class RecurringPaymentDetection:
    """Candidate pattern with naming, matching and risk annotations"""

    pattern: TransactionPattern
    suggested_name: str
    suggested_category: str
    risk_score: float
    existing_payment_id: Optional[str] = None

    @property
    def is_new_pattern(self) -> bool:
        return self.existing_payment_id is None


@dataclass
class AutoConfirmResult:
    """Outcome of one unattended confirmation pass"""

    confirmed: List[RecurringPayment] = field(default_factory=list)
    held: List[RecurringPaymentDetection] = field(default_factory=list)
    failed: List[RecurringPaymentDetection] = field(default_factory=list)


@dataclass
class Alert:
    """Due/overdue alert; recomputed on every monitor pass"""

    type: str  # "due_soon" or "overdue"
    payment_id: str
    payment_name: str
    priority: str  # "high", "medium" or "low"
    amount: Decimal
    due_date: date
    message: str
    days_until_due: Optional[int] = None
    days_overdue: Optional[int] = None


@dataclass
class NotificationSummary:
    """Outcome of one notification pass for a user"""

    upcoming_reminders: int
    overdue_alerts: int
    delivered: int = 0
    failed: int = 0

    @property
    def total_alerts(self) -> int:
        return self.upcoming_reminders + self.overdue_alerts


@dataclass
class MissedPayment:
    """Payment still unpaid past its grace period"""

    payment_id: str
    payment_name: str
    expected_amount: Decimal
    expected_date: date
    days_overdue: int
    account_id: str
    missed_consecutive_payments: int = 1


@dataclass
class CategoryCost:
    category_id: str
    category_name: str
    monthly_amount: Decimal
    quarterly_amount: Decimal
    yearly_amount: Decimal
    percentage: float


@dataclass
class FrequencyCost:
    count: int = 0
    total_amount: Decimal = Decimal("0.00")


@dataclass
class CostAnalysis:
    """Recurring spend normalized to monthly, quarterly and yearly totals"""

    monthly_total: Decimal
    quarterly_total: Decimal
    yearly_total: Decimal
    category_breakdown: List[CategoryCost] = field(default_factory=list)
    frequency_breakdown: Dict[str, FrequencyCost] = field(default_factory=dict)
