"""Single-run guard so two scheduled job runs never overlap."""

from __future__ import annotations

import hashlib
import logging
import time
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


def advisory_lock_key(name: str) -> int:
    """Signed 64-bit key derived from the job name, stable across processes."""
    digest = hashlib.sha256(name.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], byteorder="big", signed=True)


@contextmanager
def job_lock(
    engine: Engine,
    name: str,
    timeout_seconds: float = 0.0,
    poll_interval_seconds: float = 1.0,
) -> Generator[bool, None, None]:
    """
    Hold a lock named after the job while the block runs.

    On PostgreSQL this is a session-level advisory lock, polled until
    ``timeout_seconds`` runs out (0 means try once). SQLite, used for local
    runs, has no cross-process lock: the job proceeds and False is yielded.

    Raises:
        TimeoutError: another run still holds the lock at the deadline.
    """
    if engine.dialect.name != "postgresql":
        logger.warning("No advisory locks on %s; running %s unguarded", engine.dialect.name, name)
        yield False
        return

    key = advisory_lock_key(name)
    deadline = time.monotonic() + max(timeout_seconds, 0.0)
    with engine.connect() as connection:
        while not connection.execute(
            text("SELECT pg_try_advisory_lock(:key)"), {"key": key}
        ).scalar():
            if time.monotonic() >= deadline:
                raise TimeoutError(f"Job {name!r} is already running (lock key {key})")
            logger.info("Job %s is held by another run; waiting", name)
            time.sleep(max(poll_interval_seconds, 0.05))

        try:
            yield True
        finally:
            connection.execute(text("SELECT pg_advisory_unlock(:key)"), {"key": key})
