"""Recipient-facing notification queries and housekeeping."""

from datetime import datetime

import structlog
from protean.utils.globals import current_domain

from tracking.notification.notification import Notification
from tracking.utils.clock import parse_iso, utc_now

logger = structlog.get_logger(__name__)


def list_for(recipient_id: str, at: datetime | None = None, include_expired: bool = False) -> list[Notification]:
    """Notifications for a recipient, newest first."""
    repo = current_domain.repository_for(Notification)
    notifications = repo._dao.query.filter(recipient_id=recipient_id).all().items
    if not include_expired:
        notifications = [n for n in notifications if not n.is_expired(at)]
    return sorted(notifications, key=lambda n: parse_iso(n.created_at), reverse=True)


def unread_count(recipient_id: str, at: datetime | None = None) -> int:
    return sum(1 for n in list_for(recipient_id, at) if not n.read)


def mark_read(notification_id: str) -> Notification:
    repo = current_domain.repository_for(Notification)
    notification = repo.get(notification_id)
    notification.mark_read()
    repo.add(notification)
    return notification


def delete(notification_id: str) -> None:
    repo = current_domain.repository_for(Notification)
    notification = repo.get(notification_id)
    repo._dao.delete(notification)
    logger.info("Notification deleted", notification_id=notification_id)


def sweep_expired(at: datetime | None = None) -> int:
    """Delete every expired notification. Returns how many were removed."""
    at = at or utc_now()
    repo = current_domain.repository_for(Notification)
    expired = [n for n in repo._dao.query.all().items if n.is_expired(at)]
    for notification in expired:
        repo._dao.delete(notification)
    if expired:
        logger.info("Expired notifications swept", count=len(expired))
    return len(expired)
