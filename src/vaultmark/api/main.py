# Vaultmark - Local API Server
#
# FastAPI app serving the vault and bookmark routes on localhost.

import logging
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..core import EventSeverity, EventType, get_audit_logger
from .bookmark_routes import router as bookmark_router
from .vault_routes import router as vault_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Vaultmark API",
    description="Encrypted password vault and bookmark interchange",
    version=__version__,
)

# Local frontends only
_allowed_origins = [
    "http://localhost:3000", "http://127.0.0.1:3000",
    "http://localhost:8000", "http://127.0.0.1:8000",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(vault_router)
app.include_router(bookmark_router)


@app.on_event("startup")
async def startup_event():
    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_START,
        severity=EventSeverity.INFO,
        message="Vaultmark API server started",
    )


@app.on_event("shutdown")
async def shutdown_event():
    """Lock the vault so the key does not outlive the server."""
    from . import vault_routes

    mgr = vault_routes._vault_manager
    if mgr is not None and mgr.is_unlocked:
        mgr.lock_vault()
    get_audit_logger().log_event(
        event_type=EventType.SYSTEM_STOP,
        severity=EventSeverity.INFO,
        message="Vaultmark API server shutting down",
    )


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


def start_api_server(host: str = "127.0.0.1", port: int = 8000):
    """
    Start FastAPI server.

    Args:
        host: Host to bind to (default: localhost only)
        port: Port to listen on
    """
    logger.info("Serving Vaultmark API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    start_api_server()
