from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """SMS / in-app dispatch. Delivery mechanics live outside this package."""

    def send(self, *, tenant_id: int, recipient_id: int, subject: str, body: str) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Default dispatcher: records the notification in the application log."""

    def send(self, *, tenant_id: int, recipient_id: int, subject: str, body: str) -> None:
        logger.info("notify tenant=%s recipient=%s subject=%r body=%r", tenant_id, recipient_id, subject, body)


def notify_safely(notifier: Notifier, *, tenant_id: int, recipient_id: int, subject: str, body: str) -> bool:
    """Fire-and-forget: a failed dispatch never undoes the state change that triggered it."""
    try:
        notifier.send(tenant_id=tenant_id, recipient_id=recipient_id, subject=subject, body=body)
        return True
    except Exception:
        logger.exception("Notification to %s (tenant %s) failed: %s", recipient_id, tenant_id, subject)
        return False
