from __future__ import annotations

import asyncio
from typing import Iterable, Optional, Sequence

from core.host_cache import HostLookupError
from core.models import LintResult, LivenessResponse


def liveness_payload(domains: Iterable[str], dead: set[str]) -> dict:
    return {
        domain: {
            "info": {
                "domain_name": domain,
                "registered_domain": domain,
                "registered_domain_used_last_24_hours": domain not in dead,
                "used_last_24_hours": domain not in dead,
            },
            "matches": [],
        }
        for domain in domains
    }


class FakeLivenessClient:
    """Answers from a fixed dead set; queued responses are returned first."""

    def __init__(
        self,
        dead: Iterable[str] = (),
        responses: Optional[list[Optional[LivenessResponse]]] = None,
        delay: float = 0.0,
    ) -> None:
        self.dead = set(dead)
        self.calls: list[list[str]] = []
        self._responses = list(responses or [])
        self._delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def check_domains(self, domains: Sequence[str]) -> LivenessResponse:
        self.calls.append(list(domains))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            if self._responses:
                queued = self._responses.pop(0)
                if queued is not None:
                    return queued
            return LivenessResponse(status=200, payload=liveness_payload(domains, self.dead))
        finally:
            self.in_flight -= 1


class FakeLookup:
    """HostLookupPort backed by a static record table."""

    def __init__(self, records: Optional[dict[str, list[str]]] = None) -> None:
        self.records = dict(records or {})
        self.calls: list[str] = []

    async def __call__(self, hostname: str) -> list[str]:
        self.calls.append(hostname)
        if hostname not in self.records:
            raise HostLookupError(f"NXDOMAIN {hostname}")
        return list(self.records[hostname])


class FakeSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeStorage:
    def __init__(self, files: Optional[dict[str, str]] = None) -> None:
        self.files = dict(files or {})
        self.writes: list[tuple[str, str]] = []

    def read(self, path: str) -> str:
        return self.files[path]

    def write(self, path: str, content: str) -> None:
        self.writes.append((path, content))
        self.files[path] = content


class FakeReview:
    def __init__(self, accept_issue=True, accept_file: bool = True) -> None:
        self._accept_issue = accept_issue
        self._accept_file = accept_file
        self.issues: list[LintResult] = []
        self.files: list[tuple[str, int, int]] = []

    async def review_issue(self, path: str, result: LintResult) -> bool:
        self.issues.append(result)
        if callable(self._accept_issue):
            return self._accept_issue(result)
        return self._accept_issue

    async def review_file(self, path: str, removed: int, modified: int) -> bool:
        self.files.append((path, removed, modified))
        return self._accept_file
