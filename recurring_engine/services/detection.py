"""Recurring payment service - detection, confirmation and user edits"""

import logging
import time
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from recurring_engine.config import Settings, settings as default_settings
from recurring_engine.domain.analysis import summarize_recurring_costs
from recurring_engine.domain.clustering import (
    find_matching_existing_payment,
    generate_payment_name,
    group_transactions_by_pattern,
)
from recurring_engine.domain.exceptions import PaymentPersistenceError, StoreError
from recurring_engine.domain.models import (
    AutoConfirmResult,
    CostAnalysis,
    MissedPayment,
    RecurringPayment,
    RecurringPaymentDetection,
    TransactionPattern,
)
from recurring_engine.domain.monitoring import find_missed_payments
from recurring_engine.domain.ports import RecurringPaymentStore, TransactionStore
from recurring_engine.domain.scoring import calculate_risk_score
from recurring_engine.infrastructure.observability.logging import log_candidate, log_detection_pass
from recurring_engine.infrastructure.observability.metrics import record_detection
from recurring_engine.schemas import (
    PatternDetectionConfig,
    RecurringPaymentCreate,
    RecurringPaymentUpdate,
)
from recurring_engine.services.monitor import PaymentMonitor
from recurring_engine.utils.date_utils import DateLike, as_date, lookback_start, predict_next_payment_date

CENTS = Decimal("0.01")


class RecurringPaymentService:
    """Detects recurring payment candidates and manages confirmed payments"""

    def __init__(
        self,
        transaction_store: TransactionStore,
        payment_store: RecurringPaymentStore,
        settings: Optional[Settings] = None,
        notifier: Optional[PaymentMonitor] = None,
    ):
        self.transaction_store = transaction_store
        self.payment_store = payment_store
        self.settings = settings or default_settings
        self.notifier = notifier

    def detect_recurring_patterns(
        self,
        user_id: str,
        now: DateLike,
        config: Optional[PatternDetectionConfig] = None,
    ) -> List[RecurringPaymentDetection]:
        """
        Run one detection pass over a user's expense history.

        Flow:
        1. Fetch transactions inside the lookback window
        2. Keep expenses (negative amounts) and cluster them into candidates
        3. Match candidates against active payments (same account, amount within 10%)
        4. Annotate with suggested name and risk score

        Raises:
            StoreError: When either store read fails
        """
        start_time = time.time()
        config = config or PatternDetectionConfig.from_settings(self.settings)

        since = lookback_start(now, config.lookback_months)
        transactions = self.transaction_store.get_transactions(user_id, since)
        expenses = [t for t in transactions if t.amount < 0]

        patterns = group_transactions_by_pattern(expenses, config, now)
        existing_payments = self.payment_store.list_active(user_id) if patterns else []

        detections = []
        for pattern in patterns:
            existing = find_matching_existing_payment(pattern, existing_payments)
            detection = RecurringPaymentDetection(
                pattern=pattern,
                suggested_name=generate_payment_name(pattern),
                suggested_category=pattern.category_id or "",
                risk_score=calculate_risk_score(
                    pattern,
                    now,
                    self.settings.high_value_threshold,
                    self.settings.medium_value_threshold,
                ),
                existing_payment_id=existing.id if existing else None,
            )
            log_candidate(user_id, detection)
            detections.append(detection)

        detections.sort(key=lambda d: (-d.pattern.confidence, d.pattern.key))

        record_detection(patterns)
        log_detection_pass(user_id, len(transactions), len(detections), (time.time() - start_time) * 1000)
        return detections

    def confirm_pattern(
        self,
        user_id: str,
        pattern: TransactionPattern,
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> RecurringPayment:
        """
        Turn a candidate into a recurring payment on the user's request.

        Raises:
            pydantic.ValidationError: When overrides are invalid
            PaymentPersistenceError: When the store cannot persist the payment
        """
        values: Dict[str, Any] = {
            "name": generate_payment_name(pattern),
            "amount": pattern.average_amount.quantize(CENTS),
            "frequency": pattern.frequency,
            "next_due_date": pattern.next_expected_date,
            "category_id": pattern.category_id,
        }
        values.update(overrides or {})
        data = RecurringPaymentCreate(**values)

        payment = RecurringPayment(
            id=None,
            user_id=user_id,
            account_id=pattern.account_id,
            name=data.name,
            amount=data.amount,
            frequency=data.frequency,
            next_due_date=data.next_due_date,
            status="pending",
            is_active=True,
            category_id=data.category_id,
            reminder_days=data.reminder_days,
        )

        try:
            created = self.payment_store.create(payment)
        except StoreError as e:
            logging.error(
                f"Failed to persist confirmed payment: {e}",
                extra={"user_id": user_id, "pattern_key": pattern.key},
            )
            raise PaymentPersistenceError(f"Could not save recurring payment '{data.name}'") from e

        logging.info(
            "Recurring payment confirmed",
            extra={"user_id": user_id, "payment_id": created.id, "frequency": created.frequency},
        )
        return created

    def auto_confirm_low_risk(
        self,
        user_id: str,
        now: DateLike,
        max_risk: Optional[float] = None,
        config: Optional[PatternDetectionConfig] = None,
    ) -> AutoConfirmResult:
        """
        Confirm new candidates without review when they are low risk and on cycle.

        A candidate is held for review when its risk exceeds max_risk, when its
        history is inconclusive, or when too few of its gaps land on the detected
        cycle (auto_confirm_min_interval_match). Candidates matching an active
        payment, including one confirmed earlier in this pass, are skipped.
        A persistence failure is recorded against its candidate and the pass continues.
        """
        ceiling = self.settings.auto_confirm_max_risk if max_risk is None else max_risk
        min_interval_match = self.settings.auto_confirm_min_interval_match

        result = AutoConfirmResult()
        for detection in self.detect_recurring_patterns(user_id, now, config):
            pattern = detection.pattern
            if not detection.is_new_pattern or find_matching_existing_payment(pattern, result.confirmed):
                continue

            if (
                detection.risk_score > ceiling
                or not pattern.is_conclusive
                or pattern.interval_match_ratio < min_interval_match
            ):
                logging.info(
                    "Candidate held for review",
                    extra={
                        "user_id": user_id,
                        "pattern_key": pattern.key,
                        "risk_score": detection.risk_score,
                        "interval_match_ratio": pattern.interval_match_ratio,
                        "is_conclusive": pattern.is_conclusive,
                    },
                )
                result.held.append(detection)
                continue

            try:
                result.confirmed.append(self.confirm_pattern(user_id, pattern, {"name": detection.suggested_name}))
            except PaymentPersistenceError:
                result.failed.append(detection)

        logging.info(
            "Auto-confirm pass completed",
            extra={
                "user_id": user_id,
                "step": "auto_confirm_complete",
                "confirmed": len(result.confirmed),
                "held": len(result.held),
                "failed": len(result.failed),
            },
        )
        return result

    def update_recurring_payment(
        self,
        user_id: str,
        payment_id: str,
        updates: Mapping[str, Any],
    ) -> Optional[RecurringPayment]:
        """
        Apply a user edit. Returns None when the payment is not in the user's scope.

        A frequency change without an explicit next_due_date re-projects the
        due date from the current one.

        Raises:
            pydantic.ValidationError: When a field is invalid or a required field is set to null
        """
        payment = self.payment_store.get(user_id, payment_id)
        if payment is None:
            return None

        changes = RecurringPaymentUpdate(**updates).model_dump(exclude_unset=True)

        if "frequency" in changes and "next_due_date" not in changes and changes["frequency"] != payment.frequency:
            changes["next_due_date"] = predict_next_payment_date(payment.next_due_date, changes["frequency"])

        updated = replace(payment, **changes)
        return self.payment_store.save(updated)

    def cancel_recurring_payment(self, user_id: str, payment_id: str) -> Optional[RecurringPayment]:
        """Soft delete; the row is kept for audit"""
        return self.update_recurring_payment(user_id, payment_id, {"is_active": False})

    def mark_payment_paid(
        self,
        user_id: str,
        payment_id: str,
        paid_on: date,
    ) -> Optional[RecurringPayment]:
        """Record a payment for the current cycle and advance to the next due date"""
        payment = self.payment_store.get(user_id, payment_id)
        if payment is None:
            return None

        updated = replace(
            payment,
            status="paid",
            last_paid_on=paid_on,
            next_due_date=predict_next_payment_date(payment.next_due_date, payment.frequency),
        )
        return self.payment_store.save(updated)

    async def detect_and_notify(
        self,
        user_id: str,
        now: DateLike,
        config: Optional[PatternDetectionConfig] = None,
    ) -> List[RecurringPaymentDetection]:
        """Detection pass that also suggests each new candidate to the user, best-effort"""
        detections = self.detect_recurring_patterns(user_id, now, config)
        if self.notifier is not None:
            await self.notifier.notify_patterns_detected(user_id, detections)
        return detections

    async def record_payment(
        self,
        user_id: str,
        payment_id: str,
        paid_on: date,
        transaction_id: Optional[str] = None,
    ) -> Optional[RecurringPayment]:
        """mark_payment_paid plus a best-effort payment confirmation to the user"""
        paid = self.mark_payment_paid(user_id, payment_id, paid_on)
        if paid is not None and self.notifier is not None:
            await self.notifier.notify_payment_processed(user_id, paid, paid_on, transaction_id)
        return paid

    def get_missed_payments(
        self,
        user_id: str,
        now: DateLike,
        grace_period_days: Optional[int] = None,
    ) -> List[MissedPayment]:
        grace = self.settings.missed_payment_grace_days if grace_period_days is None else grace_period_days
        return find_missed_payments(self.payment_store.list_active(user_id), as_date(now), grace)

    def get_cost_analysis(
        self,
        user_id: str,
        category_names: Optional[Mapping[str, str]] = None,
    ) -> CostAnalysis:
        return summarize_recurring_costs(self.payment_store.list_active(user_id), category_names)
