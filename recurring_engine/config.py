"""Configuration management using Pydantic Settings"""

from decimal import Decimal
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./recurring_engine.db"

    # External Services
    notification_url: str = "http://localhost:8002/notifications/send"

    # Service
    service_name: str = "recurring-engine"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 5.0

    # Pattern detection defaults
    min_occurrences: int = 3
    amount_tolerance_percent: float = 5.0
    date_variance_days: int = 3
    lookback_months: int = 12
    confidence_threshold: float = 0.7

    # Risk thresholds (currency units, not cents)
    high_value_threshold: Decimal = Decimal("10000")
    medium_value_threshold: Decimal = Decimal("5000")
    auto_confirm_max_risk: float = 0.3
    # Share of gaps that must land on the detected cycle for unattended confirmation
    auto_confirm_min_interval_match: float = 0.8

    # Monitoring
    alert_window_days: int = 7
    missed_payment_grace_days: int = 3


settings = Settings()
