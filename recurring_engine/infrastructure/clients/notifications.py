"""Notification service HTTP client - single best-effort POST per notification"""

import httpx
from typing import Any, Dict, Optional
from recurring_engine.config import settings
from recurring_engine.domain.exceptions import NotificationDeliveryError
from recurring_engine.infrastructure.observability.metrics import notification_latency_histogram


class NotificationClient:
    """Client for the external notification service (email/push/in-app fan-out)"""

    def __init__(
        self,
        notification_url: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.notification_url = notification_url or settings.notification_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    async def send(self, user_id: str, payload: Dict[str, Any]) -> None:
        """
        Deliver one notification.

        No retries: the monitor treats every send as fire-and-forget.

        Raises:
            NotificationDeliveryError: On timeout, HTTP errors, or network failure
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with notification_latency_histogram.time():
                    response = await client.post(
                        self.notification_url,
                        json={"userId": user_id, **payload},
                    )
                    response.raise_for_status()

            except httpx.TimeoutException as e:
                raise NotificationDeliveryError(f"Notification service timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                raise NotificationDeliveryError(f"Notification service error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                raise NotificationDeliveryError(f"Notification service unreachable: {e}") from e
