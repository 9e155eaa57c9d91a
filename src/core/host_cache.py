"""Permanent, duplicate-suppressing hostname resolution cache.

Parallel rule processing easily fires hundreds of lookups for the same few
hostnames. Every hostname is resolved at most once at a time: concurrent
callers share the in-flight task instead of issuing a second query.
Successful answers are cached for the lifetime of the instance, failures
are not cached and are retried on the next call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List

from core.ports import HostLookupPort

LOGGER = logging.getLogger(__name__)


class HostLookupError(OSError):
    """Raised when a hostname could not be resolved."""


class HostLookupCache:
    """Singleflight lookup cache; construct one per run."""

    def __init__(self, lookup: HostLookupPort) -> None:
        self._lookup = lookup
        self._cache: Dict[str, List[str]] = {}
        self._inflight: Dict[str, "asyncio.Task[List[str]]"] = {}

    def cached(self, hostname: str) -> bool:
        return hostname in self._cache

    async def resolve_host(self, hostname: str) -> List[str]:
        """Return the addresses of `hostname` or raise HostLookupError."""

        addresses = self._cache.get(hostname)
        if addresses is not None:
            return list(addresses)

        task = self._inflight.get(hostname)
        if task is None:
            task = asyncio.ensure_future(self._lookup(hostname))
            self._inflight[hostname] = task
            task.add_done_callback(lambda done: self._on_done(hostname, done))

        # Shield so that a cancelled caller does not cancel the shared lookup.
        addresses = await asyncio.shield(task)
        return list(addresses)

    def _on_done(self, hostname: str, task: "asyncio.Task[List[str]]") -> None:
        self._inflight.pop(hostname, None)
        if task.cancelled() or task.exception() is not None:
            return
        self._cache[hostname] = list(task.result())

    async def exists(self, hostname: str) -> bool:
        """Return True when the hostname resolves to at least one address."""

        try:
            addresses = await self.resolve_host(hostname)
        except HostLookupError as exc:
            LOGGER.debug("Lookup failed for %s: %s", hostname, exc)
            return False
        return len(addresses) > 0
