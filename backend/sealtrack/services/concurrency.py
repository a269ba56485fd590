# Overview: Retry helper for optimistic-concurrency writes.

from __future__ import annotations

import logging
import time

from .document_store import VersionConflictError


logger = logging.getLogger(__name__)


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.05):
    """
    Execute a read-validate-write operation with retry on version conflicts.

    `func` must re-read the document on every call so each attempt
    validates against the latest state. The last conflict is re-raised
    once attempts are exhausted.
    """
    for attempt in range(attempts):
        try:
            return func()
        except VersionConflictError as exc:
            if attempt >= attempts - 1:
                logger.warning("Giving up after %d conflicting attempts: %s", attempts, exc)
                raise
            logger.info("Version conflict on attempt %d, retrying: %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
