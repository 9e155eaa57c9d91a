"""Liveness web service adapter.

Implements the core LivenessClientPort on top of an aiohttp session. One
call is one HTTP request; retries and Retry-After handling live in the core
resolver.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Sequence

import aiohttp

from core.liveness import LivenessServiceError
from core.models import LivenessResponse

LOGGER = logging.getLogger(__name__)

URLFILTER_URL = "https://urlfilter.adtidy.org/v2/checkDomains"


class UrlFilterClient:
    """Thin aiohttp wrapper that satisfies the LivenessClientPort contract."""

    def __init__(self, session: aiohttp.ClientSession, endpoint: str = URLFILTER_URL) -> None:
        self._session = session
        self._endpoint = endpoint

    async def check_domains(self, domains: Sequence[str]) -> LivenessResponse:
        """Query the service for a chunk of already encoded domains."""

        params = [("filter", "none")] + [("domain", domain) for domain in domains]
        try:
            async with self._session.get(self._endpoint, params=params) as response:
                retry_after = response.headers.get("Retry-After")
                if not 200 <= response.status < 300:
                    return LivenessResponse(status=response.status, retry_after=retry_after)
                payload: Any = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise LivenessServiceError(f"Request to {self._endpoint} failed: {exc}") from exc
        except ValueError as exc:
            raise LivenessServiceError(f"Invalid JSON from {self._endpoint}: {exc}") from exc

        if not isinstance(payload, Mapping):
            raise LivenessServiceError(f"Unexpected response body type: {type(payload).__name__}")
        LOGGER.debug("Checked %s domains, %s entries returned", len(domains), len(payload))
        return LivenessResponse(status=response.status, retry_after=retry_after, payload=payload)
