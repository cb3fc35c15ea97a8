"""Store-wide advisory lock.

This module serializes every engine operation against one store root,
inside a process with a thread mutex and across processes with a marker
document created atomically through the filesystem backend.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
import json
import os
import socket
import threading
import time
from typing import Iterator

from core.constants import DEFAULT_LOCK_POLL_SECONDS, DEFAULT_LOCK_TIMEOUT_SECONDS
from core.errors import LockTimeoutError, StorageError
from core.logging_config import get_logger
from store.filesystem import FileSystem

_LOGGER = get_logger(__name__)


class StoreLock:
    """Bounded-wait marker lock, re-entrant per thread.

    Nested ``hold()`` calls from the thread that already holds the lock
    only adjust a depth counter; the marker is polled and removed once.
    """

    def __init__(
        self,
        filesystem: FileSystem,
        marker_path: str,
        poll_interval: float = DEFAULT_LOCK_POLL_SECONDS,
        timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
    ) -> None:
        self._filesystem = filesystem
        self._marker_path = marker_path
        self._poll_interval = poll_interval
        self._timeout = timeout
        self._mutex = threading.Lock()
        self._local = threading.local()

    @property
    def marker_path(self) -> str:
        return self._marker_path

    @contextmanager
    def hold(self) -> Iterator[None]:
        """Hold the lock for the duration of a block.

        When the block raises, a failed release is logged and the block's
        own exception propagates.
        """
        self.acquire()
        try:
            yield
        except BaseException:
            self._release_after_error()
            raise
        self.release()

    def is_held(self) -> bool:
        """Return whether the calling thread holds the lock."""
        return self._depth() > 0

    def acquire(self) -> None:
        """Acquire the lock or fail once the wait bound elapses.

        Raises:
            LockTimeoutError: If the lock stays busy past the timeout.
            StorageError: If the marker cannot be created.
        """
        depth = self._depth()
        if depth:
            self._local.depth = depth + 1
            return
        deadline = time.monotonic() + self._timeout
        if not self._mutex.acquire(timeout=self._timeout):
            self._raise_timeout("another thread of this process holds the lock")
        try:
            self._create_marker(deadline)
        except BaseException:
            self._mutex.release()
            raise
        self._local.depth = 1
        _LOGGER.debug("store_lock_acquired", marker=self._marker_path)

    def release(self) -> None:
        """Release one level of the lock, removing the marker at the last."""
        depth = self._depth()
        if depth == 0:
            raise RuntimeError("StoreLock.release() called without holding the lock")
        if depth > 1:
            self._local.depth = depth - 1
            return
        self._local.depth = 0
        try:
            if not self._filesystem.delete(self._marker_path):
                raise StorageError(
                    f"Unable to remove store lock marker '{self._marker_path}'. "
                    "Delete it manually once no writer is active."
                )
            _LOGGER.debug("store_lock_released", marker=self._marker_path)
        finally:
            self._mutex.release()

    def _release_after_error(self) -> None:
        try:
            self.release()
        except StorageError as error:
            _LOGGER.error(
                "store_lock_release_failed",
                marker=self._marker_path,
                error=str(error),
            )

    def _create_marker(self, deadline: float) -> None:
        payload = _holder_payload()
        while not self._filesystem.create_exclusive(self._marker_path, payload):
            if time.monotonic() + self._poll_interval > deadline:
                self._raise_timeout(self._describe_holder())
            time.sleep(self._poll_interval)

    def _describe_holder(self) -> str:
        try:
            holder = json.loads(self._filesystem.read_bytes(self._marker_path))
        except (StorageError, ValueError):
            return "holder unknown"
        if not isinstance(holder, dict):
            return "holder unknown"
        return (
            f"held by {holder.get('host')} pid {holder.get('pid')} "
            f"since {holder.get('acquired_at')}"
        )

    def _raise_timeout(self, detail: str) -> None:
        _LOGGER.error(
            "store_lock_timeout",
            marker=self._marker_path,
            timeout_seconds=self._timeout,
            detail=detail,
        )
        raise LockTimeoutError(
            f"Maximum wait time of {self._timeout:g} seconds exceeded while acquiring "
            f"store lock '{self._marker_path}' ({detail}). "
            "Remove the marker if its holder is no longer running."
        )

    def _depth(self) -> int:
        return getattr(self._local, "depth", 0)


def _holder_payload() -> bytes:
    holder = {
        "host": socket.gethostname(),
        "pid": os.getpid(),
        "thread": threading.get_ident(),
        "acquired_at": datetime.now(timezone.utc).isoformat(),
    }
    return json.dumps(holder, sort_keys=True).encode("utf-8")
