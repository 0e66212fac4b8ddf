"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from taara.config import settings
from taara.database import Base, engine
from taara.errors import TaaraError
from taara.services.notification_service import NotificationFeed
from taara.services.sms_client import build_sms_client

# Import routers
from taara.routers import users, pets, requests, schedules, notifications, announcements

# Import all models so Base.metadata knows about them
from taara.models.user import User                    # noqa: F401
from taara.models.pet import Pet                      # noqa: F401
from taara.models.schedule import KaponSchedule       # noqa: F401
from taara.models.request import Request as AppRequest  # noqa: F401
from taara.models.notification import Notification    # noqa: F401
from taara.models.announcement import Announcement    # noqa: F401

logger = logging.getLogger(__name__)

app = FastAPI(
    title="TAARA",
    description="TAARA pet adoption: adoption, volunteer, kapon and donation requests with live notifications",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide collaborators
app.state.notification_feed = NotificationFeed()
app.state.sms_client = build_sms_client()


@app.exception_handler(TaaraError)
async def taara_error_handler(request: Request, exc: TaaraError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(pets.router, prefix="/api/pets", tags=["Pets"])
app.include_router(requests.router, prefix="/api/requests", tags=["Requests"])
app.include_router(schedules.router, prefix="/api/schedules", tags=["Schedules"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(announcements.router, prefix="/api/announcements", tags=["Announcements"])


@app.on_event("startup")
def on_startup():
    """Configure logging and create tables on startup (for SQLite dev mode)."""
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.on_event("shutdown")
def on_shutdown():
    if app.state.sms_client is not None:
        app.state.sms_client.close()


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
