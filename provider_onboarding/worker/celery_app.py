from __future__ import annotations

from celery import Celery

from provider_onboarding.config import settings


def make_celery() -> Celery:
    """Celery app for the notification worker.

    Redis at ``settings.redis_url`` serves as both broker and result backend.
    """

    celery = Celery(
        "onboarding",
        broker=settings.redis_url,
        backend=settings.redis_url,
        include=["provider_onboarding.worker.tasks"],
    )

    celery.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        task_track_started=True,
        timezone="UTC",
        enable_utc=True,
    )

    return celery


celery_app = make_celery()
