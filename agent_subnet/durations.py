"""Helpers for Terraform duration strings such as ``90s`` or ``1h30m``."""

import math
import re
from typing import Union

from .exceptions import ConfigurationError

_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

# "ms" must be tried before "m"
_COMPONENT = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)", re.ASCII)
_FULL = re.compile(r"^(?:\d+(?:\.\d+)?(?:ms|s|m|h))+$", re.ASCII)


def parse_duration(value: Union[str, int, float]) -> float:
    """Convert a duration to seconds.

    Args:
        value: Seconds as a number, or a Terraform/Go duration string

    Returns:
        Duration in seconds

    Raises:
        ConfigurationError: If the value is empty, negative or malformed
    """
    if isinstance(value, bool):
        raise ConfigurationError(f"Invalid duration: {value!r}")

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ConfigurationError(f"Duration must be finite: {value}")
        if value < 0:
            raise ConfigurationError(f"Duration must not be negative: {value}")
        return float(value)

    text = value.strip() if isinstance(value, str) else ""
    if not text:
        raise ConfigurationError("Duration must not be empty")

    if text.isascii() and text.isdigit():
        return float(text)

    if not _FULL.match(text):
        raise ConfigurationError(
            f"Invalid duration '{value}'",
            recovery_suggestion="Use forms like '30s', '5m' or '1h30m'",
        )

    return sum(
        float(amount) * _UNIT_SECONDS[unit] for amount, unit in _COMPONENT.findall(text)
    )


def format_duration(seconds: float) -> str:
    """Render seconds as a Terraform duration string (``90s``)."""
    if not math.isfinite(seconds):
        raise ConfigurationError(f"Duration must be finite: {seconds}")
    if seconds < 0:
        raise ConfigurationError(f"Duration must not be negative: {seconds}")
    if float(seconds).is_integer():
        return f"{int(seconds)}s"
    return f"{seconds:g}s"
