"""
Helper Utility Module

Small pure functions shared by the session layer and the CLI renderer.
"""

from typing import Any, Dict, Optional


def safe_get(data: Optional[Dict[str, Any]], *keys, default: Any = None) -> Any:
    """
    Safely get a value from a nested dictionary.

    Args:
        data: The dictionary to search
        *keys: The keys to follow
        default: Default value if key doesn't exist

    Returns:
        The value at the specified keys or the default value
    """
    for key in keys:
        try:
            data = data[key]
        except (KeyError, TypeError, IndexError):
            return default
    return data


def first_non_empty(*values: Optional[str], default: str = "") -> str:
    """
    Return the first value that is a non-empty string.

    Args:
        *values: Candidates in preference order.
        default: Returned when no candidate qualifies.

    Returns:
        str: The first usable candidate, stripped, or the default.
    """
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return default


def initial(name: Optional[str]) -> str:
    """Avatar fallback: first character of a name, upper-cased."""
    if not name:
        return ""
    return name[0].upper()
