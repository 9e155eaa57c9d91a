"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to aiohttp, dnspython or the console.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple


class Action(str, Enum):
    NO_CHANGE = "no-change"
    REMOVE = "remove"
    REWRITE = "rewrite"


@dataclass(frozen=True)
class Verdict:
    """Edit description produced by the rewriter for a single rule.

    REMOVE always carries an empty text; REWRITE always carries a non-empty
    one. Both carry the dead domains that triggered them.
    """

    action: Action
    text: str = ""
    dead_domains: Tuple[str, ...] = ()

    @classmethod
    def no_change(cls) -> "Verdict":
        return cls(Action.NO_CHANGE)

    @classmethod
    def remove(cls, dead_domains: Tuple[str, ...]) -> "Verdict":
        return cls(Action.REMOVE, "", dead_domains)

    @classmethod
    def rewrite(cls, text: str, dead_domains: Tuple[str, ...]) -> "Verdict":
        if not text:
            return cls.remove(dead_domains)
        return cls(Action.REWRITE, text, dead_domains)

    @property
    def is_change(self) -> bool:
        return self.action is not Action.NO_CHANGE


@dataclass(frozen=True)
class LintResult:
    """A rule that needs an edit, keyed by its 1-based line number."""

    line_number: int
    original_text: str
    verdict: Verdict

    @property
    def dead_domains(self) -> Tuple[str, ...]:
        return self.verdict.dead_domains


@dataclass(frozen=True)
class LivenessResponse:
    """Raw outcome of one liveness API request."""

    status: int
    retry_after: Optional[str] = None
    payload: Mapping[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass(frozen=True)
class FileReport:
    """Summary of one processed filter list file."""

    path: str
    rules_total: int
    issues: int
    removed: int
    modified: int
    written: bool
