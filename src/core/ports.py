"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for the liveness service, DNS, file
storage and user review adapters so that the core can be reused with
different backends and tested with plain fakes.
"""

from __future__ import annotations

from typing import List, Protocol, Sequence

from core.models import LintResult, LivenessResponse


class LivenessClientPort(Protocol):
    """One request to the domain liveness web service."""

    async def check_domains(self, domains: Sequence[str]) -> LivenessResponse:
        ...


class HostLookupPort(Protocol):
    """Forward A-record lookup; raises HostLookupError on failure."""

    async def __call__(self, hostname: str) -> List[str]:
        ...


class FilterStoragePort(Protocol):
    """Whole-file access to filter lists."""

    def read(self, path: str) -> str:
        ...

    def write(self, path: str, content: str) -> None:
        ...


class ReviewPort(Protocol):
    """Presentation and confirmation of suggested edits."""

    async def review_issue(self, path: str, result: LintResult) -> bool:
        ...

    async def review_file(self, path: str, removed: int, modified: int) -> bool:
        ...
