from __future__ import annotations

import logging
from typing import Any

import httpx

from provider_onboarding.config import settings
from provider_onboarding.worker.celery_app import celery_app


logger = logging.getLogger(__name__)


def deliver_notification(template_id: str, recipient: str, variables: dict[str, Any]) -> int:
    """POST one notification to the notification service and return its status code."""

    response = httpx.post(
        settings.notification_service_url,
        json={"template_id": template_id, "recipient": recipient, "variables": variables},
        timeout=settings.external_timeout_seconds,
    )
    response.raise_for_status()
    return response.status_code


@celery_app.task(
    name="onboarding.send_notification",
    autoretry_for=(httpx.TransportError,),
    retry_backoff=True,
    max_retries=3,
)
def send_notification(template_id: str, recipient: str, variables: dict[str, Any]) -> None:
    try:
        status_code = deliver_notification(template_id, recipient, variables)
    except httpx.HTTPStatusError as e:
        logger.error(
            "notification rejected template=%s recipient=%s status=%s",
            template_id,
            recipient,
            e.response.status_code,
        )
        return

    logger.info("notification sent template=%s recipient=%s status=%s", template_id, recipient, status_code)
