import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from heritage_realtime.application.use_cases.notifications import (
    NotificationService,
    NotificationStore,
)
from heritage_realtime.config import get_settings
from heritage_realtime.domain.exceptions import NotificationError
from heritage_realtime.infrastructure.database import SessionLocal, engine, initialize_database
from heritage_realtime.infrastructure.notifications import NotificationPublisher, RealtimeHub
from heritage_realtime.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the database and the realtime hub, and tear both down on shutdown."""

    settings = get_settings()
    initialize_database()

    hub = RealtimeHub(settings)
    store = NotificationStore(
        SessionLocal, live_members=hub.registry.principals_in, settings=settings
    )
    service = NotificationService(store, hub.dispatcher)
    hub.dispatcher.set_unread_counter(store.unread_count)
    hub.attach_sweeper(store.sweep_expired)

    app.state.realtime = hub
    app.state.notifications = service
    app.state.notification_publisher = NotificationPublisher(
        service.create_notification, asyncio.get_running_loop()
    )

    await hub.start()
    try:
        yield
    finally:
        await hub.stop()
        engine.dispose()


async def handle_notification_error(request: Request, exc: NotificationError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title=settings.project_name, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(NotificationError, handle_notification_error)

    register_routes(app)
    return app


app = create_app()
