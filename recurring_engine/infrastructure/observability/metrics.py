"""Prometheus metrics for detection volume, alert mix and notification delivery"""

from typing import Iterable

from prometheus_client import Counter, Histogram

from recurring_engine.domain.models import Alert, TransactionPattern

# Detection metrics
detection_pass_counter = Counter(
    "recurring_detection_passes_total",
    "Total detection passes run",
)

candidate_counter = Counter(
    "recurring_candidates_total",
    "Recurring payment candidates emitted",
    ["frequency"],  # weekly | monthly | quarterly | yearly
)

# Monitoring metrics
alert_counter = Counter(
    "recurring_alerts_total",
    "Due/overdue alerts emitted",
    ["type", "priority"],
)

# Notification metrics
notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification service response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "notification_failures_total",
    "Failed notification dispatches",
)

# Store health
store_failures_counter = Counter(
    "store_failures_total",
    "Failed storage reads or writes",
    ["store"],  # transactions | recurring_payments
)


def record_detection(patterns: Iterable[TransactionPattern]) -> None:
    """Record one detection pass and its candidates by frequency"""
    detection_pass_counter.inc()
    for pattern in patterns:
        candidate_counter.labels(frequency=pattern.frequency).inc()


def record_alerts(alerts: Iterable[Alert]) -> None:
    for alert in alerts:
        alert_counter.labels(type=alert.type, priority=alert.priority).inc()
