"""Health check endpoint."""

from fastapi import APIRouter, Depends

from config.settings import get_settings
from services.session_store import SessionStore, get_session_store

router = APIRouter()


@router.get("/api/health")
async def health_check(store: SessionStore = Depends(get_session_store)):
    """Liveness plus session store connectivity."""
    settings = get_settings()
    store_ok = await store.ping()
    return {
        "status": "healthy" if store_ok else "degraded",
        "provider": settings.llm_provider,
        "model": settings.default_model,
        "sessionStore": type(store).__name__,
    }
