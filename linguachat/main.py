import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict

from fastapi import Depends, FastAPI
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from linguachat.config import get_settings
from linguachat.database import close_db, get_db, init_db
from linguachat.routers.conversations import router as conversations_router
from linguachat.routers.friendships import router as friendships_router
from linguachat.routers.messages import router as messages_router
from linguachat.routers.tools import router as tools_router
from linguachat.routers.users import router as users_router
from linguachat.services.notifier import ChangeNotifier

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup and shutdown."""
    # Startup
    await init_db()
    log.info("Lingua Chat started (env=%s, version=%s)", settings.env, settings.commit_hash)
    yield
    # Shutdown
    await app.state.notifier.drain()
    await close_db()


app = FastAPI(
    title="Lingua Chat",
    description="Two-party chat with automatic English/Spanish translation",
    version=settings.commit_hash or "dev",
    lifespan=lifespan,
)
app.state.notifier = ChangeNotifier()

# Include routers
app.include_router(users_router, prefix="/api/users", tags=["users"])
app.include_router(friendships_router, prefix="/api/friendships", tags=["friendships"])
app.include_router(
    conversations_router, prefix="/api/conversations", tags=["conversations"]
)
app.include_router(messages_router, prefix="/api/conversations", tags=["messages"])
app.include_router(tools_router, prefix="/api", tags=["tools"])


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> Dict[str, str]:
    """Health check endpoint with database connectivity."""
    try:
        # Test database connection
        result = await db.execute(text("SELECT 1"))
        db_status = "connected" if result.scalar() == 1 else "error"
    except Exception:
        log.exception("Database health check failed")
        db_status = "disconnected"

    return {
        "status": "healthy" if db_status == "connected" else "degraded",
        "database": db_status,
        "environment": settings.env,
        "version": settings.commit_hash,
    }


# If run directly, start the server
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)
