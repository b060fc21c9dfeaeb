import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from redis.asyncio import Redis
from sqlalchemy import text

from conectado.auth.routes import admin, auth
from conectado.badges.routes import badges as badges_routes
from conectado.core import redis as redis_module
from conectado.core.config import settings
from conectado.core.exceptions import register_exception_handlers
from conectado.core.log_config import RequestLoggingMiddleware, setup_logging
from conectado.core.rate_limit import limiter
from conectado.db.session import SessionLocal
from conectado.messaging.routes import messages as messages_routes
from conectado.notifications.routes import notifications as notifications_routes
from conectado.realtime import routes as realtime_routes

setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("connecting_to_redis")
    redis_module.redis_client = Redis.from_url(
        settings.REDIS_URL, decode_responses=True, encoding="utf-8"
    )

    try:
        if redis_module.redis_client:
            await redis_module.redis_client.ping()
            logger.info("redis_connected")
    except Exception as e:
        logger.error("redis_connection_failed", error=str(e))

    yield

    logger.info("closing_redis")
    if redis_module.redis_client:
        await redis_module.redis_client.close()
    logger.info("redis_closed")


app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Messaging, notifications and presence API for Voluntariado Conectado RD",
    version="1.0.0",
)

app.state.limiter = limiter
register_exception_handlers(app, debug=settings.DEBUG)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

app.include_router(auth.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["authentication"])
app.include_router(admin.router, prefix=f"{settings.API_V1_PREFIX}/admin", tags=["admin"])
app.include_router(
    messages_routes.router,
    prefix=f"{settings.API_V1_PREFIX}/message",
    tags=["messages"],
)
app.include_router(
    notifications_routes.router,
    prefix=f"{settings.API_V1_PREFIX}/notification",
    tags=["notifications"],
)
app.include_router(
    badges_routes.router,
    prefix=f"{settings.API_V1_PREFIX}/badge",
    tags=["badges"],
)
app.include_router(realtime_routes.router, tags=["realtime"])


@app.get("/")
async def root() -> dict[str, str]:
    return {"message": "Voluntariado Conectado API", "version": "1.0.0", "status": "running"}


@app.get("/health")
async def health_check() -> dict[str, str]:
    redis_status = "unknown"
    db_status = "unknown"

    try:
        if redis_module.redis_client:
            await redis_module.redis_client.ping()
            redis_status = "healthy"
    except Exception:
        redis_status = "unhealthy"

    try:
        db = SessionLocal()
        try:
            db.execute(text("SELECT 1"))
            db_status = "healthy"
        finally:
            db.close()
    except Exception:
        db_status = "unhealthy"

    all_healthy = redis_status == "healthy" and db_status == "healthy"
    overall = "healthy" if all_healthy else "degraded"

    return {"status": overall, "redis": redis_status, "database": db_status}
