"""
Configuration Validation for the Link Feed client

This module contains configuration validation logic.
Kept apart from settings.py so settings stays a plain constants module.
"""

import re
from urllib.parse import urlparse

from utils.exceptions import ConfigurationError

TABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_settings():
    """
    Validate that all required settings are properly configured.

    Raises:
        ConfigurationError: If required settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []

    # Required environment variables
    required_vars = [
        ("SUPABASE_URL", settings.SUPABASE_URL),
        ("SUPABASE_ANON_KEY", settings.SUPABASE_ANON_KEY),
    ]

    for var_name, var_value in required_vars:
        if not var_value:
            errors.append(f"Missing required environment variable: {var_name}")

    if settings.SUPABASE_URL:
        parsed = urlparse(settings.SUPABASE_URL)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"SUPABASE_URL must be an http(s) URL, got {settings.SUPABASE_URL!r}")

    # Table and function names end up in request paths
    if not TABLE_NAME_PATTERN.match(settings.POSTS_TABLE or ""):
        errors.append(f"POSTS_TABLE is not a valid table name: {settings.POSTS_TABLE!r}")

    if settings.LIKE_RPC_FUNCTION and not TABLE_NAME_PATTERN.match(settings.LIKE_RPC_FUNCTION):
        errors.append(f"LIKE_RPC_FUNCTION is not a valid function name: {settings.LIKE_RPC_FUNCTION!r}")

    if settings.HTTP_TIMEOUT <= 0:
        errors.append(f"HTTP_TIMEOUT must be positive, got {settings.HTTP_TIMEOUT}")

    if settings.LOG_LEVEL not in LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {settings.LOG_LEVEL}")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    return {
        "backend": {
            "url": settings.SUPABASE_URL,
            "anon_key_configured": bool(settings.SUPABASE_ANON_KEY),
            "posts_table": settings.POSTS_TABLE,
            "atomic_likes": bool(settings.LIKE_RPC_FUNCTION),
        },
        "auth": {
            "oauth_provider": settings.OAUTH_PROVIDER,
            "redirect_url": settings.OAUTH_REDIRECT_URL or None,
        },
        "feed": {
            "self_like_guard": settings.SELF_LIKE_GUARD,
        },
    }
