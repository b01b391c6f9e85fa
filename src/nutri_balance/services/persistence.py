"""Helpers for translating store failures into PersistenceError."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from nutri_balance.errors import PersistenceError

logger = logging.getLogger(__name__)


@contextmanager
def persistence_errors(operation: str, **extra: object) -> Iterator[None]:
    """Log and wrap any store exception raised inside the block."""
    try:
        yield
    except Exception as exc:
        logger.exception(
            "Store operation failed", extra={"operation": operation, **extra}
        )
        if isinstance(exc, PersistenceError):
            raise
        raise PersistenceError(f"Failed to {operation}") from exc
