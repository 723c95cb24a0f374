"""Background tasks for the form builder service."""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from celery import shared_task
from django.conf import settings

from .exceptions import FormNotFound, StorageFailure
from .services import FormCoordinator

logger = logging.getLogger(__name__)


def forward_submission(form_id: str, submission_id: str, payload: Dict[str, Any]) -> bool:
    """POST a stored submission to the configured webhook, if any."""

    url = settings.SUBMISSION_WEBHOOK_URL
    if not url:
        return False
    try:
        response = requests.post(
            url,
            json={"formId": form_id, "submissionId": submission_id, "payload": payload},
            timeout=settings.SERVICE_TIMEOUT,
        )
        response.raise_for_status()
    except requests.RequestException:
        logger.exception("Forwarding submission %s to %s failed", submission_id, url)
        return False
    return True


@shared_task(bind=True, max_retries=3, default_retry_delay=5)
def record_submission(self, form_id: str, payload: Dict[str, Any]) -> Optional[str]:
    """Store a consented submission off the request path."""

    try:
        submission = FormCoordinator().record_submission(form_id, payload)
    except FormNotFound:
        logger.warning("Form %s no longer exists; submission dropped", form_id)
        return None
    except StorageFailure as exc:  # pragma: no cover - retries exercised in production
        logger.exception("Storing submission for form %s failed", form_id)
        raise self.retry(exc=exc, countdown=min(60, 2 ** self.request.retries))

    logger.info("Stored submission %s for form %s", submission.id, form_id)
    forward_submission(form_id, str(submission.id), payload)
    return str(submission.id)
