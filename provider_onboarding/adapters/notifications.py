from __future__ import annotations

import logging
from typing import Any, Protocol

logger = logging.getLogger("onboarding.notifications")

SEND_NOTIFICATION_TASK = "onboarding.send_notification"


class Notifier(Protocol):
    def dispatch(self, template_id: str, recipient: str, variables: dict[str, Any]) -> None: ...


class NotificationDispatcher:
    """Fire-and-forget hand-off to the notification worker.

    Nothing here may fail the calling operation: when Celery is disabled the
    message is only logged, and enqueue failures are logged and dropped.
    """

    def __init__(self, *, enabled: bool) -> None:
        self.enabled = enabled

    def dispatch(self, template_id: str, recipient: str, variables: dict[str, Any]) -> None:
        if not self.enabled:
            logger.info("notification skipped (celery disabled) template=%s recipient=%s", template_id, recipient)
            return

        try:
            # Imported lazily so the API process does not build the Celery app unless needed.
            from provider_onboarding.worker.celery_app import celery_app

            celery_app.send_task(SEND_NOTIFICATION_TASK, args=[template_id, recipient, variables])
        except Exception:
            logger.exception(
                "Failed to enqueue notification template=%s recipient=%s",
                template_id,
                recipient,
            )
