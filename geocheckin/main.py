from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from .db import init_db
from .routers import checkins, locations
from .core.logging import configure_logging
from .core.redis import ping_redis, close_redis
from .core.nats import nats_connect, nats_close

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    await init_db()
    # best-effort connect to infra; service still runs if these fail
    try:
        await nats_connect()
    except Exception:
        logger.warning("NATS unavailable at startup", exc_info=True)
    if not await ping_redis():
        logger.warning("Redis unavailable at startup")
    yield
    await nats_close()
    await close_redis()

app = FastAPI(title="geo-checkin-svc", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(checkins.router)
app.include_router(locations.router)

@app.get("/health")
async def health():
    return {"status": "ok", "service": "geo-checkin-svc"}

Instrumentator().instrument(app).expose(app)
