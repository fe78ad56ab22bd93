"""
Helper Utility Module

This module provides various helper functions used throughout the Crossposter application.
"""

from typing import Any, Dict
from urllib.parse import urlencode, urlparse


def is_valid_url(url: str) -> bool:
    """
    Check if a URL is valid.

    Args:
        url: The URL to validate

    Returns:
        bool: True if the URL is valid, False otherwise
    """
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except Exception:
        return False


def truncate_text(text: str, max_length: int = 100, add_ellipsis: bool = True) -> str:
    """
    Truncate text to a maximum length.

    Args:
        text: The text to truncate
        max_length: Maximum length
        add_ellipsis: Whether to add an ellipsis if text is truncated

    Returns:
        str: Truncated text
    """
    if not text or len(text) <= max_length:
        return text

    truncated = text[:max_length].rstrip()
    if add_ellipsis:
        truncated += "..."

    return truncated


def safe_get(data: Dict[str, Any], *keys, default: Any = None) -> Any:
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


def with_query(url: str, **params) -> str:
    """
    Append query parameters to a URL, keeping any it already has.

    Args:
        url: Base URL, e.g. the frontend address
        **params: Parameters to add; None values are skipped

    Returns:
        str: The URL with the encoded parameters appended
    """
    query = urlencode({k: v for k, v in params.items() if v is not None})
    if not query:
        return url
    separator = '&' if urlparse(url).query else '?'
    return f"{url}{separator}{query}"
