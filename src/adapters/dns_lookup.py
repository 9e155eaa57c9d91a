"""DNS adapters.

`DnsPythonLookup` performs forward A lookups with dnspython's async
resolver and is what HostLookupCache wraps. `CachedHostResolver` plugs the
same cache into aiohttp so the HTTP transport never floods the system
resolver when many rules are in flight.
"""

from __future__ import annotations

import socket
from typing import Any, Dict, List, Optional, Sequence

import dns.asyncresolver
import dns.exception
from aiohttp.abc import AbstractResolver

from core.host_cache import HostLookupCache, HostLookupError

# The liveness service builds its snapshots from its own DNS traffic, so the
# double-check goes to a public resolver instead.
DEFAULT_NAMESERVERS = ("8.8.8.8",)


class DnsPythonLookup:
    """Forward A-record lookup; satisfies the core HostLookupPort."""

    def __init__(self, nameservers: Optional[Sequence[str]] = DEFAULT_NAMESERVERS, timeout: float = 5.0) -> None:
        if nameservers:
            self._resolver = dns.asyncresolver.Resolver(configure=False)
            self._resolver.nameservers = list(nameservers)
        else:
            self._resolver = dns.asyncresolver.Resolver()
        self._resolver.lifetime = timeout

    async def __call__(self, hostname: str) -> List[str]:
        try:
            answer = await self._resolver.resolve(hostname, "A")
        except dns.exception.DNSException as exc:
            raise HostLookupError(f"{hostname}: {exc}") from exc
        return [rdata.address for rdata in answer]


class CachedHostResolver(AbstractResolver):
    """aiohttp resolver backed by the shared HostLookupCache (IPv4 only)."""

    def __init__(self, cache: HostLookupCache) -> None:
        self._cache = cache

    async def resolve(self, host: str, port: int = 0, family: int = socket.AF_INET) -> List[Dict[str, Any]]:
        addresses = await self._cache.resolve_host(host)
        if not addresses:
            raise HostLookupError(f"No addresses found for {host}")
        return [
            {
                "hostname": host,
                "host": address,
                "port": port,
                "family": socket.AF_INET,
                "proto": 0,
                "flags": socket.AI_NUMERICHOST,
            }
            for address in addresses
        ]

    async def close(self) -> None:
        pass
