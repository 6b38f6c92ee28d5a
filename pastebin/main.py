"""
Paste service - Main FastAPI application.
"""
import asyncio
import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pastebin.config import settings
from pastebin.database import db
from pastebin.exceptions import StorageError
from pastebin.routes import health, pastes

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Pastebin",
    description="Share text by short key, with optional expiry and burn after reading",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include route modules
app.include_router(health.router)
app.include_router(pastes.router)

_purge_task: Optional[asyncio.Task] = None


async def purge_expired_loop(interval_seconds: int) -> None:
    """Periodically reclaim expired pastes. Reads never depend on this."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await asyncio.to_thread(db.purge_expired)
        except StorageError as e:
            logger.error(f"Expired paste purge failed: {e}")


@app.on_event("startup")
async def startup_event():
    """Startup event handler."""
    global _purge_task
    logger.info("Paste service starting...")

    if db.using_fallback:
        logger.warning("DATABASE: Using IN-MEMORY storage (Redis not available)")
        logger.warning("   Data will NOT persist across server restarts!")
    else:
        logger.info(f"DATABASE: Using {db.backend} storage")

    if settings.PURGE_INTERVAL_SECONDS > 0:
        _purge_task = asyncio.create_task(purge_expired_loop(settings.PURGE_INTERVAL_SECONDS))


@app.on_event("shutdown")
async def shutdown_event():
    """Shutdown event handler."""
    global _purge_task
    logger.info("Paste service shutting down...")
    if _purge_task is not None:
        _purge_task.cancel()
        try:
            await _purge_task
        except asyncio.CancelledError:
            pass
        _purge_task = None


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "pastebin.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
