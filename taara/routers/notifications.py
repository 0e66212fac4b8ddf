"""Notification feed API routes and live WebSocket stream."""
import asyncio
import json
import logging
from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from taara.database import SessionLocal
from taara.dependencies import get_dispatcher, get_feed
from taara.schemas.notification import NotificationOut, UnreadCount, BulkResult
from taara.services.notification_service import NotificationDispatcher, NotificationFeed

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[NotificationOut])
def list_notifications(user_id: str = Query(...), dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    """All notifications for a user, newest first."""
    return dispatcher.list_for_user(user_id)


@router.get("/unread-count", response_model=UnreadCount)
def unread_count(user_id: str = Query(...), dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    return UnreadCount(user_id=user_id, count=dispatcher.unread_count(user_id))


@router.post("/read-all", response_model=BulkResult)
def mark_all_read(user_id: str = Query(...), dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    return BulkResult(user_id=user_id, count=dispatcher.mark_all_read(user_id))


@router.post("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: str, dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    """Mark one notification read; repeating the call changes nothing."""
    return dispatcher.mark_read(notification_id)


@router.delete("/", response_model=BulkResult)
def clear_all(user_id: str = Query(...), dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    """Permanently delete every notification of a user."""
    return BulkResult(user_id=user_id, count=dispatcher.clear_all(user_id))


def _frame(snapshot: list[NotificationOut]) -> dict:
    return {
        "type": "notifications",
        "notifications": [n.model_dump(mode="json") for n in snapshot],
        "unread_count": sum(1 for n in snapshot if not n.read),
    }


def _subscribe_with_snapshot(feed: NotificationFeed, user_id: str, on_change):
    """Subscribe using a session that is closed once the initial list is sent."""
    db = SessionLocal()
    try:
        return NotificationDispatcher(db, feed).subscribe(user_id, on_change)
    finally:
        db.close()


async def _pump(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        await websocket.send_json(await queue.get())


async def _listen(websocket: WebSocket, queue: asyncio.Queue):
    """Drain client messages; answers pings, exits on disconnect."""
    while True:
        data = await websocket.receive_text()
        try:
            message = json.loads(data)
        except ValueError:
            continue
        if isinstance(message, dict) and message.get("type") == "ping":
            queue.put_nowait({"type": "pong"})


@router.websocket("/ws")
async def notification_stream(
    websocket: WebSocket,
    user_id: str = Query(...),
    feed: NotificationFeed = Depends(get_feed),
):
    """Push the user's full feed on connect and after every change.

    Snapshots are published from worker threads, so they are handed to the
    socket's event loop through a queue. No database connection is held
    while the stream is open.
    """
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_change(snapshot):
        loop.call_soon_threadsafe(queue.put_nowait, _frame(snapshot))

    unsubscribe = await run_in_threadpool(_subscribe_with_snapshot, feed, user_id, on_change)
    logger.info("Notification stream opened for user %s", user_id)
    tasks = [asyncio.create_task(_pump(websocket, queue)), asyncio.create_task(_listen(websocket, queue))]
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc is not None and not isinstance(exc, WebSocketDisconnect):
                raise exc
    finally:
        for task in tasks:
            task.cancel()
        unsubscribe()
        logger.info("Notification stream closed for user %s", user_id)
