"""FastAPI entry point for the interview answer evaluator."""

import logging
from contextlib import asynccontextmanager

import litellm
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.evaluation import router as evaluation_router
from api.health import router as health_router
from api.questions import router as questions_router
from api.sessions import router as sessions_router
from config.settings import get_settings
from services.concurrency import ConcurrencyLimitMiddleware
from services.llm_service import get_provider_registry
from services.middleware import RequestIdMiddleware, configure_logging
from services.session_store import RedisSessionStore, get_session_store

logger = logging.getLogger(__name__)

settings = get_settings()

# ── Global LiteLLM settings ──────────────────────────────────
# The evaluator enforces its own per-attempt deadline; this is a backstop.
litellm.request_timeout = settings.request_timeout_seconds * 2


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle — start/stop shared resources."""
    registry = get_provider_registry()
    await registry.start()
    logger.info(
        "LLM providers ready: %s (default %s/%s)",
        ", ".join(registry.names),
        settings.llm_provider,
        settings.default_model,
    )

    store = get_session_store()
    if isinstance(store, RedisSessionStore):
        if await store.ping():
            logger.info("Redis connection verified")
        else:
            logger.warning("Redis connection failed — sessions may not persist")

    yield

    await store.close()
    await registry.close()


app = FastAPI(
    title="Interview Answer Evaluator",
    description="LLM-based scoring of technical interview answers against a rubric",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Middleware stack ─────────────────────────────────────────
# add_middleware wraps: the last one added is outermost
# ConcurrencyLimit → RequestId → CORS → route handler
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)
app.add_middleware(ConcurrencyLimitMiddleware)

# ── Register routers ────────────────────────────────────────
app.include_router(health_router)
app.include_router(evaluation_router)
app.include_router(sessions_router)
app.include_router(questions_router)


if __name__ == "__main__":
    configure_logging(logging.DEBUG if settings.debug else logging.INFO)
    if settings.debug:
        # Development: single worker with reload
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.service_port,
            reload=True,
        )
    else:
        # Production: prefer gunicorn main:app -c deploy/gunicorn.conf.py
        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=settings.service_port,
            workers=4,
            timeout_keep_alive=120,
        )
