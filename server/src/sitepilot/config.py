"""Configuration and constants."""
from __future__ import annotations

import os
import secrets
from pathlib import Path


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# Directory configuration
DATA_DIR = Path(os.environ.get("SITEPILOT_DATA_DIR", Path(__file__).parent.resolve()))
SITES_DIR = Path(os.environ.get("SITEPILOT_SITES_DIR", DATA_DIR / "sites"))
DB_PATH = Path(os.environ.get("SITEPILOT_DB_PATH", DATA_DIR / "data.db"))

# Operator access
ADMIN_TOKEN = os.environ.get("SITEPILOT_ADMIN_TOKEN")
AUTH_ENABLED = _env_flag("SITEPILOT_AUTH_ENABLED")
AUTH_DEFAULT_USER = os.environ.get("SITEPILOT_AUTH_DEFAULT_USER", "admin")
AUTH_DEFAULT_PASS = os.environ.get("SITEPILOT_AUTH_DEFAULT_PASS")

# Signing secrets. Unset secrets are generated per process, so tokens
# issued before a restart stop verifying.
AUTH_SECRET = os.environ.get("SITEPILOT_AUTH_SECRET") or secrets.token_urlsafe(32)
SITE_AUTH_SECRET = os.environ.get("SITEPILOT_SITE_AUTH_SECRET") or secrets.token_urlsafe(32)

# Cookies
AUTH_COOKIE_NAME = os.environ.get("SITEPILOT_AUTH_COOKIE_NAME", "sp_auth")
AUTH_COOKIE_SECURE = _env_flag("SITEPILOT_AUTH_COOKIE_SECURE")
SITE_AUTH_COOKIE_NAME = os.environ.get("SITEPILOT_SITE_AUTH_COOKIE_NAME", "site_auth")
SITE_AUTH_COOKIE_SECURE = _env_flag("SITEPILOT_SITE_AUTH_COOKIE_SECURE")
TOKEN_LIFETIME_DAYS = 7

# HTTP
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "SITEPILOT_CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
    ).split(",")
    if origin.strip()
]
MAX_UPLOAD_SIZE = int(os.environ.get("SITEPILOT_MAX_UPLOAD_SIZE", 50 * 1024 * 1024))
BASE_DOMAIN = os.environ.get("SITEPILOT_BASE_DOMAIN")

# Runtime flags (also set via command line args)
DEV_MODE = _env_flag("SITEPILOT_DEV_MODE")
JSON_LOGS = _env_flag("SITEPILOT_JSON_LOGS")

# Hosting layout
ENTRY_DOCUMENT = "index.html"
STAGING_PREFIX = "_staging."
RETIRED_PREFIX = "_retired."
DELETED_PREFIX = "_deleted."

# Settings keys
ALLOWED_DOMAINS_KEY = "allowedDomains"
