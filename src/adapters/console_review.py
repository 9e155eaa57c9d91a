"""Console review adapter.

Implements the core ReviewPort with rich: every issue is printed as a
red/green diff and confirmed individually, then the per-file summary is
confirmed before anything is written.
"""

from __future__ import annotations

import asyncio
from enum import Enum
import logging

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.text import Text

from core.models import Action, LintResult
from core.processor import COMMENT_OUT_PREFIX

LOGGER = logging.getLogger(__name__)


class ReviewMode(str, Enum):
    INTERACTIVE = "interactive"
    AUTO = "auto"
    SHOW = "show"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def format_issue(result: LintResult, comment_out: bool = False) -> Text:
    """Render one suggested edit as a two-line diff.

    With `comment_out` a removal shows the commented-out line that will be
    written instead of an empty one.
    """

    if result.verdict.action is Action.REWRITE:
        suggested = result.verdict.text
    elif comment_out:
        suggested = COMMENT_OUT_PREFIX + result.original_text
    else:
        suggested = ""
    text = Text()
    text.append(f"Found dead domains in a rule: {', '.join(result.dead_domains)}\n")
    text.append(f"- {result.line_number}: {result.original_text}\n", style="red")
    text.append(f"+ {result.line_number}: {suggested}", style="green")
    return text


def format_summary(path: str, removed: int, modified: int) -> Text:
    text = Text()
    text.append(f"Summary for {path}:\n", style="bold")
    text.append(f"{_plural(removed, 'line')} will be removed.\n")
    text.append(f"{_plural(modified, 'line')} will be modified.")
    return text


class ConsoleReview:
    """Review adapter; --show declines, --auto confirms, otherwise it asks."""

    def __init__(self, mode: ReviewMode, console: Console | None = None, comment_out: bool = False) -> None:
        self._mode = mode
        self._comment_out = comment_out
        self._console = console or Console()

    async def review_issue(self, path: str, result: LintResult) -> bool:
        self._console.print(format_issue(result, self._comment_out))
        return await self._confirm("Apply suggested fix?")

    async def review_file(self, path: str, removed: int, modified: int) -> bool:
        self._console.print(Panel(format_summary(path, removed, modified), expand=False))
        return await self._confirm("Apply modifications to the file?")

    async def _confirm(self, message: str) -> bool:
        if self._mode is ReviewMode.SHOW:
            LOGGER.info("%s: declined automatically", message)
            return False
        if self._mode is ReviewMode.AUTO:
            LOGGER.info("%s: confirmed automatically", message)
            return True
        # Confirm.ask blocks on stdin; keep the event loop free meanwhile.
        return await asyncio.to_thread(Confirm.ask, message, console=self._console)
