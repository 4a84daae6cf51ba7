"""
Backend entry point.

One Python process, one asyncio event loop running FastAPI. The lifespan
hook checks configuration at startup and closes database connections on
shutdown.

Run with: python main.py [--dev] [--port PORT]
"""

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv

# Load .env.local first (if exists), then .env as fallback
# .env.local is gitignored and used for local dev overrides
load_dotenv(project_root / ".env.local")
load_dotenv()

import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import (
    check_required_env_vars,
    get_allowed_origins,
    get_sentry_dsn,
    is_dev_mode,
)
from core.database import close_engine, is_configured
from core.outline.session import get_session_store

# Import routes using full paths
from web_api.routes.attachments import router as attachments_router
from web_api.routes.outline_sessions import router as outline_sessions_router
from web_api.routes.outlines import router as outlines_router
from web_api.routes.progress import router as progress_router

logging.basicConfig(
    level=logging.DEBUG if is_dev_mode() else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if get_sentry_dsn():
    sentry_sdk.init(
        dsn=get_sentry_dsn(),
        environment="development" if is_dev_mode() else "production",
        traces_sample_rate=0.1,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager.

    Reports missing settings on startup, closes the database pool on shutdown.
    """
    ok, warnings = check_required_env_vars()
    for warning in warnings:
        logger.warning(warning)
    if not ok:
        raise RuntimeError("Missing required environment variables")

    yield

    open_sessions = len(get_session_store())
    if open_sessions:
        logger.info(f"Shutting down with {open_sessions} open editing session(s)")
    await close_engine()


app = FastAPI(
    title="Course Outline Platform API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(outlines_router)
app.include_router(outline_sessions_router)
app.include_router(progress_router)
app.include_router(attachments_router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "database_configured": is_configured(),
        "open_sessions": len(get_session_store()),
    }


if __name__ == "__main__":
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(description="Course Outline Platform Server")
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Enable development mode (debug logging)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("API_PORT", "8000")),
        help="Port to run the server on (default: API_PORT or 8000)",
    )
    args = parser.parse_args()

    # Set env var so it persists across uvicorn reloads
    if args.dev:
        os.environ["DEV_MODE"] = "true"

    # Pass app object directly (not string) to avoid module reimport issues
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=args.port,
    )
