"""FastAPI dependencies that assemble the services for one request.

The notification feed and SMS client are process-wide and live on
``app.state``; everything else is built per request around the session.
"""
from typing import Optional

from fastapi import Depends
from fastapi.requests import HTTPConnection
from sqlalchemy.orm import Session

from taara.database import get_db
from taara.services.capacity_service import CapacityLedger
from taara.services.lifecycle_service import RequestLifecycleEngine
from taara.services.notification_service import NotificationDispatcher, NotificationFeed
from taara.services.sms_client import SmsClient


def get_feed(conn: HTTPConnection) -> NotificationFeed:
    return conn.app.state.notification_feed


def get_sms(conn: HTTPConnection) -> Optional[SmsClient]:
    return getattr(conn.app.state, "sms_client", None)


def get_dispatcher(
    db: Session = Depends(get_db),
    feed: NotificationFeed = Depends(get_feed),
) -> NotificationDispatcher:
    return NotificationDispatcher(db, feed)


def get_engine(
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    sms: Optional[SmsClient] = Depends(get_sms),
) -> RequestLifecycleEngine:
    return RequestLifecycleEngine(db, dispatcher, sms=sms)


def get_ledger(
    db: Session = Depends(get_db),
    engine: RequestLifecycleEngine = Depends(get_engine),
) -> CapacityLedger:
    return CapacityLedger(db, engine)
