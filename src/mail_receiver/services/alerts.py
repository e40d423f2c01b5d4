from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx

from mail_receiver.services.retry import with_retry

if TYPE_CHECKING:
    from mail_receiver.config import Settings

logger = logging.getLogger(__name__)


class AlertService:
    def __init__(self, settings: "Settings", transport: Optional[httpx.BaseTransport] = None) -> None:
        self.settings = settings
        self.transport = transport

    def notify(
        self,
        *,
        alert_type: str,
        summary: str,
        context: dict[str, Any] | None = None,
        error: Exception | None = None,
    ) -> None:
        payload = {
            "event": "receiver_alert",
            "alert_type": alert_type,
            "summary": summary,
            "context": context or {},
            "error": repr(error) if error else "",
        }
        logger.error("Receiver alert", extra=payload)
        self._send_webhook(payload)

    def _send_webhook(self, payload: dict[str, Any]) -> None:
        if not self.settings.alert_webhook_url:
            return

        def _post() -> httpx.Response:
            with httpx.Client(timeout=20.0, transport=self.transport) as client:
                return client.post(self.settings.alert_webhook_url, json=payload)

        try:
            response = with_retry(
                operation="alert_webhook_post",
                call=_post,
                max_attempts=max(1, self.settings.api_retry_max_attempts),
                base_delay_seconds=self.settings.api_retry_base_delay_seconds,
                max_delay_seconds=self.settings.api_retry_max_delay_seconds,
                logger=logger,
            )
            response.raise_for_status()
        except Exception as exc:
            logger.error(
                "Failed to deliver alert webhook",
                extra={"event": "alert_webhook_delivery_failed", "error": repr(exc)},
            )
