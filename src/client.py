"""HTTP client factory for deadscope.

We explicitly manage the aiohttp session's lifecycle so it is obvious when
connections are opened and when they are released: the session is created
once per run and closed by the caller.
"""

from __future__ import annotations

import logging
from typing import Optional

import aiohttp

from adapters.dns_lookup import CachedHostResolver
from core.host_cache import HostLookupCache


def build_session(
    host_cache: HostLookupCache,
    concurrency: int,
    request_timeout: Optional[float] = None,
) -> aiohttp.ClientSession:
    """Create the aiohttp session used for liveness API requests.

    Hostname resolution goes through the shared HostLookupCache, and the
    connection pool is sized to the number of rules processed in parallel.
    """

    logging.getLogger(__name__).info("Initializing HTTP client")

    connector = aiohttp.TCPConnector(
        limit=concurrency,
        resolver=CachedHostResolver(host_cache),
        keepalive_timeout=15,
    )
    timeout = aiohttp.ClientTimeout(total=request_timeout)
    return aiohttp.ClientSession(connector=connector, timeout=timeout)
