"""
Configuration Settings for the Link Feed client

This module centralizes all configuration settings, including the hosted
backend endpoint and key, like policy, and client constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file (real environment wins)
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'), override=False)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    try:
        return float(value) if value else default
    except ValueError:
        return default


# =============================================================================
# Hosted Backend (row CRUD + auth)
# =============================================================================

SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_ANON_KEY = os.getenv("SUPABASE_ANON_KEY", "")

REST_PATH = "/rest/v1"
AUTH_PATH = "/auth/v1"

POSTS_TABLE = os.getenv("POSTS_TABLE", "posts")

# Name of a server-side function doing `likes = likes + 1` in one statement.
# Empty means likes are written with a compare-and-set update instead.
LIKE_RPC_FUNCTION = os.getenv("LIKE_RPC_FUNCTION", "")

HTTP_TIMEOUT = _env_float("HTTP_TIMEOUT", 10.0)   # Seconds per request

# =============================================================================
# Auth Settings
# =============================================================================

OAUTH_PROVIDER = os.getenv("OAUTH_PROVIDER", "twitter")
OAUTH_REDIRECT_URL = os.getenv("OAUTH_REDIRECT_URL", "")

# Where access/refresh tokens are kept between runs
SESSION_FILE = os.getenv("SESSION_FILE", os.path.join(APP_ROOT, ".session.json"))

# =============================================================================
# Feed Behaviour
# =============================================================================

# Authors may not like their own posts when enabled
SELF_LIKE_GUARD = _env_bool("SELF_LIKE_GUARD", True)

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
