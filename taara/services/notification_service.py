"""Notification dispatcher and live feed.

Responsibilities:
- Write per-user notification records (lifecycle transitions, new-pet broadcasts)
- Read/unread bookkeeping: mark_read is idempotent, clear_all is a hard delete
- Push the full, newest-first snapshot of a user's feed to live subscribers
  after every insert/update/delete for that user
"""
import itertools
import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.orm import Session

from taara.errors import NotFoundError
from taara.models.notification import Notification
from taara.schemas.notification import NotificationOut

logger = logging.getLogger(__name__)

Snapshot = list[NotificationOut]


class NotificationFeed:
    """Process-wide registry of live notification listeners, keyed by user id.

    Sync endpoints run in a thread pool, so the registry is guarded by a lock.
    Listeners are called outside the lock.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: dict[str, dict[int, Callable[[Snapshot], None]]] = {}
        self._ids = itertools.count(1)

    def add(self, user_id: str, listener: Callable[[Snapshot], None]) -> Callable[[], None]:
        with self._lock:
            token = next(self._ids)
            self._listeners.setdefault(user_id, {})[token] = listener

        def unsubscribe() -> None:
            with self._lock:
                user_listeners = self._listeners.get(user_id)
                if user_listeners is None:
                    return
                user_listeners.pop(token, None)
                if not user_listeners:
                    del self._listeners[user_id]

        return unsubscribe

    def has_listeners(self, user_id: str) -> bool:
        with self._lock:
            return bool(self._listeners.get(user_id))

    def publish(self, user_id: str, snapshot: Snapshot) -> None:
        with self._lock:
            listeners = list(self._listeners.get(user_id, {}).values())
        for listener in listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Notification listener for user %s failed", user_id)


def _dedupe(notifications: Iterable[NotificationOut]) -> Snapshot:
    seen: set[str] = set()
    unique = []
    for n in notifications:
        if n.notification_id in seen:
            continue
        seen.add(n.notification_id)
        unique.append(n)
    return unique


def _unread(snapshot: Snapshot) -> int:
    return sum(1 for n in snapshot if not n.read)


class NotificationDispatcher:
    """Creates and mutates notifications through an injected session."""

    def __init__(self, db: Session, feed: NotificationFeed):
        self.db = db
        self.feed = feed

    # ── writes ─────────────────────────────────────────────────────
    def notify(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        related_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Notification:
        """Insert one notification and push the recipient's new snapshot."""
        notification = self._build(user_id, notification_type, title, message, related_id, metadata)
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        logger.info("Notification %s (%s) created for user %s", notification.notification_id, notification_type, user_id)
        self._publish(user_id)
        return notification

    def notify_many(
        self,
        user_ids: Iterable[str],
        notification_type: str,
        title: str,
        message: str,
        related_id: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Broadcast the same notification to several users in one commit."""
        recipients = list(dict.fromkeys(user_ids))
        for uid in recipients:
            self.db.add(self._build(uid, notification_type, title, message, related_id, metadata))
        self.db.commit()
        logger.info("Broadcast notification (%s) to %d users", notification_type, len(recipients))
        for uid in recipients:
            self._publish(uid)
        return len(recipients)

    def mark_read(self, notification_id: str) -> Notification:
        """Mark one notification read. A second call is a no-op."""
        notification = self.db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.read:
            return notification

        notification.read = True
        notification.read_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(notification)
        logger.info("Notification %s marked as read", notification_id)
        self._publish(notification.user_id)
        return notification

    def mark_all_read(self, user_id: str) -> int:
        now = datetime.now(timezone.utc)
        unread = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read.is_(False))
            .all()
        )
        for notification in unread:
            notification.read = True
            notification.read_at = now
        self.db.commit()
        logger.info("Marked %d notifications as read for user %s", len(unread), user_id)
        if unread:
            self._publish(user_id)
        return len(unread)

    def clear_all(self, user_id: str) -> int:
        """Hard-delete every notification owned by the user."""
        count = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        logger.info("Cleared %d notifications for user %s", count, user_id)
        self._publish(user_id)
        return count

    # ── reads ──────────────────────────────────────────────────────
    def list_for_user(self, user_id: str) -> Snapshot:
        rows = (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .all()
        )
        return _dedupe(NotificationOut.model_validate(n) for n in rows)

    def unread_count(self, user_id: str) -> int:
        return (
            self.db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.read.is_(False))
            .count()
        )

    # ── live subscriptions ─────────────────────────────────────────
    def subscribe(self, user_id: str, on_change: Callable[[Snapshot], None]) -> Callable[[], None]:
        """Deliver the current feed now and again after every change.

        Publishes that race the initial delivery wait for it, so a listener
        never sees the initial list after a newer one. Listeners must not
        write notifications for the same user synchronously.
        """
        return self._subscribe(user_id, on_change, lambda: self.list_for_user(user_id))

    def subscribe_unread_count(self, user_id: str, on_change: Callable[[int], None]) -> Callable[[], None]:
        return self._subscribe(user_id, on_change, lambda: self.unread_count(user_id), transform=_unread)

    def _subscribe(self, user_id, on_change, initial, transform=None) -> Callable[[], None]:
        guard = threading.Lock()

        def deliver(snapshot):
            with guard:
                on_change(transform(snapshot) if transform else snapshot)

        with guard:
            unsubscribe = self.feed.add(user_id, deliver)
            try:
                on_change(initial())
            except Exception:
                unsubscribe()
                raise
        return unsubscribe

    # ── helpers ────────────────────────────────────────────────────
    @staticmethod
    def _build(user_id, notification_type, title, message, related_id, metadata) -> Notification:
        return Notification(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            read=False,
            created_at=datetime.now(timezone.utc),
            related_id=related_id,
            meta=dict(metadata or {}),
        )

    def _publish(self, user_id: str) -> None:
        if not self.feed.has_listeners(user_id):
            return
        self.feed.publish(user_id, self.list_for_user(user_id))
