"""
Centralized configuration for the course outline platform.

All settings come from environment variables (loaded from .env / .env.local
by main.py before anything reads them).
"""

import os
from pathlib import Path

DEFAULT_MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024


def is_dev_mode() -> bool:
    """Check if running in development mode (--dev flag or DEV_MODE env)."""
    return os.getenv("DEV_MODE", "").lower() in ("true", "1", "yes")


def is_production() -> bool:
    """Check if APP_ENV marks this as the production environment."""
    return os.getenv("APP_ENV", "").lower() == "production"


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "8000"))


def get_frontend_url() -> str:
    """Get frontend URL, defaulting to the Vite dev server."""
    return os.environ.get("FRONTEND_URL", "http://localhost:5173").rstrip("/")


def get_allowed_origins() -> list[str]:
    """
    Get list of allowed CORS origins.

    Includes localhost variants for dev and the configured frontend URL.
    """
    origins = [
        f"http://{host}:{port}"
        for host in ("localhost", "127.0.0.1")
        for port in (get_api_port(), 5173)
    ]
    frontend_url = get_frontend_url()
    if frontend_url not in origins:
        origins.append(frontend_url)
    return origins


def get_attachments_path() -> Path:
    """Directory where uploaded attachment files are stored."""
    return Path(os.getenv("ATTACHMENTS_PATH", "uploads"))


def get_courses_path() -> Path | None:
    """Root folder of on-disk courses for import, if configured."""
    value = os.getenv("COURSES_PATH")
    return Path(value) if value else None


def get_max_attachment_bytes() -> int:
    return int(os.getenv("MAX_ATTACHMENT_BYTES", str(DEFAULT_MAX_ATTACHMENT_BYTES)))


def get_sentry_dsn() -> str | None:
    return os.getenv("SENTRY_DSN") or None


# Required environment variables
# Format: (name, description, required_in_dev)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string", True),
    ("ATTACHMENTS_PATH", "Directory for uploaded attachments", False),
    ("SENTRY_DSN", "Sentry DSN for error reporting", False),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages
    """
    warnings = []
    errors = []
    in_dev = is_dev_mode()

    for name, description, required_in_dev in REQUIRED_ENV_VARS:
        if os.environ.get(name):
            continue
        if is_production() and required_in_dev:
            errors.append(f"  ✗ {name}: Not set ({description})")
        elif required_in_dev or not in_dev:
            warnings.append(f"  ⚠ {name}: Not set ({description})")

    if errors:
        for error in errors:
            print(error)
        return False, warnings

    return True, warnings
