"""Dead domain resolution (core domain).

A domain is dead when the liveness service saw no traffic to its registered
domain in the last 24 hours. Verdicts are cached for the lifetime of the
resolver, requests are chunked and rate limiting (429/503 + Retry-After) is
honoured up to a fixed number of attempts.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from core.config import LivenessConfig
from core.extractor import unique
from core.host_cache import HostLookupCache
from core.models import LivenessResponse
from core.ports import LivenessClientPort

LOGGER = logging.getLogger(__name__)

# 503 - Service Unavailable, 429 - Too Many Requests
RETRYABLE_STATUSES = frozenset({429, 503})


class LivenessServiceError(RuntimeError):
    """Raised when the liveness service cannot give a usable answer."""


def query_domain(domain: str) -> str:
    """Return the form the liveness service expects: ASCII, no FQDN dot."""

    trimmed = domain[:-1] if domain.endswith(".") else domain
    try:
        return trimmed.encode("idna").decode("ascii")
    except UnicodeError:
        # Labels the IDNA codec refuses (e.g. overlong) are sent as-is and
        # simply come back unknown.
        return trimmed.lower()


def parse_retry_after(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    """Parse a Retry-After header into a delay in seconds.

    Accepts delta-seconds or an HTTP date; returns None when the value is
    missing or unparsable. Dates in the past mean "retry now".
    """

    if value is None:
        return None
    value = value.strip()
    if value.isdigit():
        return float(int(value))
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return max(0.0, (when - now).total_seconds())


def is_reported_dead(payload: Mapping[str, object], domain: str) -> bool:
    """Only an explicit `registered_domain_used_last_24_hours: false` is dead."""

    entry = payload.get(query_domain(domain))
    if entry is None:
        entry = payload.get(domain)
    if not isinstance(entry, Mapping):
        return False
    info = entry.get("info")
    if not isinstance(info, Mapping):
        return False
    return info.get("registered_domain_used_last_24_hours") is False


def chunked(items: Sequence[str], size: int) -> List[List[str]]:
    return [list(items[index : index + size]) for index in range(0, len(items), size)]


class DeadDomainResolver:
    """Finds the dead subset of a set of domains; construct one per run."""

    def __init__(
        self,
        client: LivenessClientPort,
        host_cache: HostLookupCache,
        config: LivenessConfig,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        if config.chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        if config.max_attempts < 1:
            raise ValueError("max_attempts must be positive")
        self._client = client
        self._host_cache = host_cache
        self._config = config
        self._sleep = sleep
        # domain -> True when alive, False when dead.
        self._cache: Dict[str, bool] = {}

    def cached_verdict(self, domain: str) -> Optional[bool]:
        return self._cache.get(domain)

    async def resolve(self, domains: Iterable[str], double_check_dns: Optional[bool] = None) -> List[str]:
        """Return the dead subset of `domains`, keeping the input spelling."""

        if double_check_dns is None:
            double_check_dns = self._config.double_check_dns

        dead: List[str] = []
        misses: List[str] = []
        for domain in unique(domains):
            verdict = self._cache.get(domain)
            if verdict is None:
                misses.append(domain)
            elif verdict is False:
                dead.append(domain)

        if not misses:
            return dead

        reported: List[str] = []
        for chunk in chunked(misses, self._config.chunk_size):
            payload = await self._fetch_chunk(chunk)
            reported.extend(domain for domain in chunk if is_reported_dead(payload, domain))

        if double_check_dns:
            confirmed = []
            for domain in reported:
                if await self._host_cache.exists(domain):
                    LOGGER.debug("%s is reported dead but still resolves, keeping it", domain)
                    continue
                confirmed.append(domain)
            reported = confirmed

        dead_misses = set(reported)
        for domain in misses:
            self._cache[domain] = domain not in dead_misses
        dead.extend(reported)
        return dead

    async def _fetch_chunk(self, chunk: Sequence[str]) -> Mapping[str, object]:
        query = [query_domain(domain) for domain in chunk]
        max_attempts = self._config.max_attempts

        for attempt in range(1, max_attempts + 1):
            response: LivenessResponse = await self._client.check_domains(query)
            if response.ok:
                return response.payload

            if response.status not in RETRYABLE_STATUSES:
                raise LivenessServiceError(f"Failed to fetch domains, response code {response.status}")
            delay = parse_retry_after(response.retry_after)
            if delay is None:
                raise LivenessServiceError(
                    f"Fetch status {response.status} without a usable Retry-After ({response.retry_after!r})"
                )
            if attempt == max_attempts:
                break

            LOGGER.info("Retry required (attempt %s): waiting %.1fs", attempt, delay)
            await self._sleep(delay)

        raise LivenessServiceError(f"Fetching {len(chunk)} domains failed after {max_attempts} attempts")
