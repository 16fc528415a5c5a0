# services/notifications.py
"""
Notification store and service

The store is the durable, tenant-scoped log. The service ties it to the
push hub: a notification is broadcast only after it has been committed, so
clients never see a notification that is missing on reload.
"""

import logging
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from core.database_models import db, Notification, NotificationType
from core.hub import NotificationHub

logger = logging.getLogger(__name__)


class NotificationStoreError(Exception):
    """A notification could not be persisted"""


class NotificationStore:
    """Insert and fetch notifications for one site key"""

    def __init__(self, session, site_key: str):
        self.session = session
        self.site_key = site_key

    def insert(self, message: str, notification_type: NotificationType) -> Notification:
        """
        Persist a notification and return the stored row

        Raises:
            NotificationStoreError: the insert or commit failed
        """
        record = Notification(
            site_key=self.site_key,
            message=message,
            type=notification_type.value,
        )
        try:
            self.session.add(record)
            self.session.commit()
            self.session.refresh(record)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Notification insert failed: {e}")
            raise NotificationStoreError(str(e)) from e

        return record

    def fetch_recent(self, limit: int) -> List[Notification]:
        return (
            Notification.query
            .filter_by(site_key=self.site_key)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    def count(self) -> int:
        return Notification.query.filter_by(site_key=self.site_key).count()


class NotificationService:
    """Create notifications and push them to connected clients"""

    def __init__(self, store: NotificationStore, hub: NotificationHub):
        self.store = store
        self.hub = hub

    def create_notification(self, message: str, notification_type: NotificationType,
                            broadcast: bool = True) -> Dict[str, Any]:
        """
        Store a notification, then broadcast the stored record

        Returns:
            The stored record as a dictionary

        Raises:
            NotificationStoreError: nothing was stored and nothing was broadcast
        """
        record = self.store.insert(message, notification_type)

        if broadcast:
            self.hub.broadcast(record.to_payload())

        return record.to_dict()

    def notify(self, message: str, notification_type: NotificationType = NotificationType.INFO) -> Optional[Dict[str, Any]]:
        """
        Fire a notification for an internal business event

        The triggering action has already succeeded, so a storage failure is
        logged and reported as None.
        """
        try:
            return self.create_notification(message, notification_type)
        except NotificationStoreError as e:
            logger.error(f"Failed to record notification '{message}': {e}")
            return None

    def history(self, limit: int) -> List[Dict[str, Any]]:
        return [record.to_dict() for record in self.store.fetch_recent(limit)]


def get_notification_service() -> NotificationService:
    """Build the service for the current app and tenant"""
    store = NotificationStore(db.session, current_app.config['SITE_KEY'])
    return NotificationService(store, current_app.hub)
