"""Utility functions for crform"""

import logging
import math
from pathlib import Path

logger = logging.getLogger(__name__)


def canonicalify(p: Path | str) -> Path:
    return Path(p).expanduser().resolve()


def ensure_path(p: Path | str) -> Path:
    path = canonicalify(p)
    path.mkdir(parents=True, exist_ok=True)
    return path


def sanitize(sensitive: str | None, keep_chars: int = 2) -> str:
    """Mask sensitive information for logging.

    Args:
        sensitive: The sensitive string to mask (e.g., bearer token, password)
        keep_chars: Number of leading and trailing characters to keep

    Returns:
        Masked string with middle characters replaced by asterisks.

    Examples:
        >>> sanitize("eyJhbGciOiJIUzI1NiJ9")
        'ey***J9'
        >>> sanitize(None)
        '***'
    """
    if not sensitive:
        return "***"

    if len(sensitive) <= keep_chars * 2:
        return "***"

    return f"{sensitive[:keep_chars]}***{sensitive[-keep_chars:]}"


def parse_number(text: str) -> int | float | None:
    """Parse user-entered text as a finite number.

    Returns:
        int or float, or None when the text is not a finite number

    Examples:
        >>> parse_number("42")
        42
        >>> parse_number(" 2.5 ")
        2.5
        >>> parse_number("nan") is None
        True
    """
    text = text.strip()
    if not text:
        return None

    try:
        return int(text)
    except ValueError:
        pass

    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None
