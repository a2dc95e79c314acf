"""
Logging helpers shared by the engine modules.

Wraps stdlib loggers with once-only warnings so that repeated soft failures
(for example a deprecated type-group spelling queried in a loop) are reported
a single time per process.
"""
from __future__ import annotations

import logging
import threading

_seen: set[tuple[str, str]] = set()
_seen_lock = threading.Lock()


def warn_once(logger: logging.Logger, message: str) -> bool:
    """
    Log a warning only the first time this logger sees this message.

    Args:
        logger: Logger to write to.
        message: Fully formatted warning text.

    Returns:
        True if the warning was emitted, False if it was suppressed.
    """
    key = (logger.name, message)
    with _seen_lock:
        if key in _seen:
            return False
        _seen.add(key)
    logger.warning(message)
    return True


def deprecated(logger: logging.Logger, message: str) -> bool:
    """Log a one-time deprecation warning."""
    return warn_once(logger, f"DEPRECATED - {message}")


def reset_warnings() -> None:
    """Forget previously emitted warnings (used by tests)."""
    with _seen_lock:
        _seen.clear()
