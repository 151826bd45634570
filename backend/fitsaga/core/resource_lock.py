"""
Per-resource mutual exclusion for ledger and enrollment mutations.

Every booking, cancellation and adjustment holds the lock for each user and
session it touches until its database transaction has committed. Keys are
always taken in sorted order so two operations over the same pair of
resources can never deadlock.

In-process ``asyncio.Lock`` objects serialize coroutines within one worker.
With ``distributed_locks_enabled`` a Redis ``SET NX EX`` key is also taken so
several API processes serialize on the same resources. Redis failures fail
open: the row locks and conditional updates in the repositories still guard
the data.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass
import logging
import time
from typing import Any, AsyncIterator, Dict, Optional

from redis.asyncio import Redis

from fitsaga.core.config import settings
from fitsaga.core.exceptions import ConflictException
from fitsaga.monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

_RETRY_INTERVAL_S = 0.05


def user_key(user_id: str) -> str:
    return f"user:{user_id}"


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


class ResourceBusyError(ConflictException):
    """The distributed lock for a resource stayed held past the wait budget."""

    def __init__(self, key: str, waited_s: float):
        super().__init__(
            message="Resource is busy, please retry",
            code="RESOURCE_BUSY",
            details={"resource": key, "waited_seconds": round(waited_s, 2)},
        )


@dataclass
class _LockEntry:
    lock: asyncio.Lock
    holders: int = 0


class ResourceLockManager:
    def __init__(
        self,
        *,
        distributed: bool = False,
        redis_url: Optional[str] = None,
        ttl_s: int = 30,
        wait_s: float = 5.0,
        namespace: str = "fitsaga",
        redis_client: Optional[Any] = None,
    ) -> None:
        self.distributed = distributed
        self.redis_url = redis_url
        self.ttl_s = ttl_s
        self.wait_s = wait_s
        self.namespace = namespace
        self._redis = redis_client
        self._entries: Dict[str, _LockEntry] = {}

    def _namespaced_key(self, key: str) -> str:
        return f"{self.namespace}:lock:{key}"

    def _get_redis(self) -> Optional[Any]:
        if self._redis is not None:
            return self._redis
        if not self.redis_url:
            return None
        try:
            self._redis = Redis.from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        except Exception as exc:
            logger.warning("resource_lock_redis_unavailable: %s", exc)
            return None
        return self._redis

    def is_locked(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    @asynccontextmanager
    async def _local(self, key: str) -> AsyncIterator[None]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LockEntry(asyncio.Lock())
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            # Drop idle locks so they never outlive the loop that created them
            if entry.holders == 0:
                self._entries.pop(key, None)

    async def _acquire_distributed(self, key: str) -> bool:
        """Returns True when the key must be released afterwards."""
        client = self._get_redis()
        if client is None:
            prometheus_metrics.record_resource_lock("acquire", "redis_unavailable")
            return False

        started = time.monotonic()
        while True:
            try:
                acquired = bool(
                    await client.set(self._namespaced_key(key), str(time.time()), nx=True, ex=self.ttl_s)
                )
            except Exception as exc:
                prometheus_metrics.record_resource_lock("acquire", "error")
                logger.warning(
                    "resource_lock_acquire_failed",
                    extra={"resource": key, "error": str(exc), "error_type": type(exc).__name__},
                )
                return False
            if acquired:
                prometheus_metrics.record_resource_lock("acquire", "success")
                return True

            waited = time.monotonic() - started
            if waited >= self.wait_s:
                prometheus_metrics.record_resource_lock("acquire", "blocked")
                raise ResourceBusyError(key, waited)
            await asyncio.sleep(_RETRY_INTERVAL_S)

    async def _release_distributed(self, key: str) -> None:
        client = self._get_redis()
        if client is None:
            return
        try:
            deleted = await client.delete(self._namespaced_key(key))
            prometheus_metrics.record_resource_lock("release", "success" if deleted else "not_found")
        except Exception as exc:
            prometheus_metrics.record_resource_lock("release", "error")
            logger.warning(
                "resource_lock_release_failed",
                extra={"resource": key, "error": str(exc), "error_type": type(exc).__name__},
            )

    @asynccontextmanager
    async def _distributed(self, key: str) -> AsyncIterator[None]:
        held = await self._acquire_distributed(key)
        try:
            yield
        finally:
            if held:
                await self._release_distributed(key)

    @asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        """Hold every key (deduplicated, sorted) for the duration of the block."""
        ordered = sorted(set(keys))
        async with AsyncExitStack() as stack:
            for key in ordered:
                await stack.enter_async_context(self._local(key))
            if self.distributed:
                for key in ordered:
                    await stack.enter_async_context(self._distributed(key))
            yield


_manager: Optional[ResourceLockManager] = None


def get_lock_manager() -> ResourceLockManager:
    """Process-wide lock manager built from settings."""
    global _manager
    if _manager is None:
        _manager = ResourceLockManager(
            distributed=settings.distributed_locks_enabled,
            redis_url=settings.redis_url,
            ttl_s=settings.lock_ttl_seconds,
            wait_s=settings.lock_wait_seconds,
            namespace=settings.lock_namespace,
        )
    return _manager


__all__ = [
    "ResourceBusyError",
    "ResourceLockManager",
    "get_lock_manager",
    "session_key",
    "user_key",
]
