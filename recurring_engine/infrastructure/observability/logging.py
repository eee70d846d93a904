"""Structured JSON logging for batch detection and notification passes"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO
from pythonjsonlogger import jsonlogger

from recurring_engine.config import settings
from recurring_engine.domain.models import RecurringPaymentDetection

LOG_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping each record with UTC time, level and service name"""

    def __init__(self, *args: Any, service_name: Optional[str] = None, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.service_name = service_name or settings.service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", stream: TextIO = sys.stdout) -> None:
    """Route the root logger through a single JSON handler"""
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(CustomJsonFormatter(LOG_FORMAT))
    root.addHandler(handler)


def log_detection_pass(
    user_id: str,
    transaction_count: int,
    candidate_count: int,
    duration_ms: float,
) -> None:
    """Log structured detection outcome for analysis"""
    logging.info(
        "Detection pass completed",
        extra={
            "user_id": user_id,
            "step": "detection_complete",
            "transaction_count": transaction_count,
            "candidate_count": candidate_count,
            "duration_ms": duration_ms,
        },
    )


def log_candidate(user_id: str, detection: RecurringPaymentDetection) -> None:
    """Debug record of how one candidate scored"""
    pattern = detection.pattern
    logging.debug(
        "Recurring candidate scored",
        extra={
            "user_id": user_id,
            "step": "candidate_scored",
            "pattern_key": pattern.key,
            "frequency": pattern.frequency,
            "occurrences": pattern.occurrences,
            "confidence": pattern.confidence,
            "interval_match_ratio": pattern.interval_match_ratio,
            "is_conclusive": pattern.is_conclusive,
            "risk_score": detection.risk_score,
            "existing_payment_id": detection.existing_payment_id,
        },
    )


def log_notification_failure(
    user_id: str,
    notification_type: str,
    error: BaseException,
    **context: Any,
) -> None:
    """Log a failed notification dispatch; delivery is best-effort"""
    logging.warning(
        f"Notification dispatch failed: {error}",
        extra={
            "user_id": user_id,
            "notification_type": notification_type,
            "step": "notification_dispatch",
            "error_type": type(error).__name__,
            **context,
        },
    )
