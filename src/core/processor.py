"""Core filter list processing pipeline.

This module is integration-agnostic. It only relies on ports for file
access and user review, enabling other frontends or adapters without
changes here.

The pipeline for one file enforces a strict order:
1) Parse every line
2) Extract -> resolve -> rewrite each rule, at most `concurrency` at a time
3) Present issues in ascending line order and collect confirmations
4) Apply accepted edits in descending line order
5) Write the file back, once, after every accepted edit is applied
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Sequence

from core.config import ProcessingConfig
from core.extractor import extract_rule_domains
from core.filter_rules import FilterLine, FilterList, RuleSyntaxError, parse_rule
from core.liveness import DeadDomainResolver
from core.models import Action, FileReport, LintResult
from core.ports import FilterStoragePort, ReviewPort
from core.rewriter import rewrite_rule

LOGGER = logging.getLogger(__name__)

COMMENT_OUT_PREFIX = "! commented out by deadscope: "
PROGRESS_EVERY = 100


class RuleLinter:
    """Runs extractor, resolver and rewriter for single rules."""

    def __init__(self, resolver: DeadDomainResolver, double_check_dns: Optional[bool] = None) -> None:
        self._resolver = resolver
        self._double_check_dns = double_check_dns

    async def lint_line(self, line_number: int, text: str) -> Optional[LintResult]:
        """Return a LintResult for a rule that needs an edit, else None.

        Parse and rewrite anomalies are contained here; liveness service
        failures propagate and abort the caller.
        """

        try:
            rule = parse_rule(text)
            domains = extract_rule_domains(rule)
        except RuleSyntaxError as exc:
            LOGGER.warning("Failed to parse line %s due to %s, skipping it", line_number, exc)
            return None

        if not domains:
            return None

        LOGGER.debug("Processing line %s: %s", line_number, text)
        dead_domains = await self._resolver.resolve(domains, self._double_check_dns)
        if not dead_domains:
            return None

        try:
            verdict = rewrite_rule(rule, dead_domains)
        except ValueError as exc:
            LOGGER.warning("Failed to process line %s due to %s, skipping it", line_number, exc)
            return None

        if not verdict.is_change:
            return None
        return LintResult(line_number=line_number, original_text=text, verdict=verdict)


def apply_results(
    filter_list: FilterList,
    results: Sequence[LintResult],
    comment_out: bool = False,
) -> None:
    """Apply accepted edits to `filter_list` in place.

    Edits go bottom-up so that deleting a line never shifts the index of a
    line that is still waiting for its edit.
    """

    for result in sorted(results, key=lambda item: item.line_number, reverse=True):
        index = result.line_number - 1
        line = filter_list.lines[index]
        if line.text != result.original_text:
            raise ValueError(f"Line {result.line_number} changed since it was analyzed")

        verdict = result.verdict
        if verdict.action is Action.REMOVE:
            if comment_out:
                filter_list.lines[index] = FilterLine(COMMENT_OUT_PREFIX + line.text, line.ending)
            else:
                del filter_list.lines[index]
        elif verdict.action is Action.REWRITE:
            filter_list.lines[index] = FilterLine(verdict.text, line.ending)


class FilterListProcessor:
    """Orchestrates linting, review and rewriting of filter list files."""

    def __init__(
        self,
        linter: RuleLinter,
        storage: FilterStoragePort,
        review: ReviewPort,
        config: ProcessingConfig,
    ) -> None:
        if config.concurrency < 1:
            raise ValueError("concurrency must be positive")
        self._linter = linter
        self._storage = storage
        self._review = review
        self._config = config

    async def lint_list(self, filter_list: FilterList) -> List[LintResult]:
        """Lint every line with a bounded number of rules in flight.

        Results come back sorted by line number. The first unrecovered error
        cancels the remaining rules and is re-raised.
        """

        semaphore = asyncio.Semaphore(self._config.concurrency)
        total = len(filter_list)
        analyzed = 0
        issues = 0

        async def _lint(line_number: int, text: str) -> Optional[LintResult]:
            nonlocal analyzed, issues
            async with semaphore:
                try:
                    result = await self._linter.lint_line(line_number, text)
                finally:
                    analyzed += 1
                if result is not None:
                    issues += 1
                if analyzed % PROGRESS_EVERY == 0:
                    LOGGER.info("Analyzed %s/%s rules, found %s issues", analyzed, total, issues)
                return result

        tasks = [
            asyncio.ensure_future(_lint(number, line.text))
            for number, line in enumerate(filter_list.lines, start=1)
        ]
        try:
            outcomes = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        results = [outcome for outcome in outcomes if outcome is not None]
        results.sort(key=lambda item: item.line_number)
        return results

    async def process_file(self, path: str) -> FileReport:
        """Run one file through the whole pipeline."""

        content = self._storage.read(path)
        filter_list = FilterList.parse(content)
        if not filter_list.lines:
            LOGGER.info("No rules found in %s", path)
            return FileReport(path=path, rules_total=0, issues=0, removed=0, modified=0, written=False)

        LOGGER.info("Analyzing %s rules in %s", len(filter_list), path)
        results = await self.lint_list(filter_list)
        LOGGER.info("Found %s issues in %s", len(results), path)

        accepted: List[LintResult] = []
        for result in results:
            if await self._review.review_issue(path, result):
                accepted.append(result)

        removed = sum(1 for result in accepted if result.verdict.action is Action.REMOVE)
        modified = len(accepted) - removed
        report = FileReport(
            path=path,
            rules_total=len(filter_list),
            issues=len(results),
            removed=removed,
            modified=modified,
            written=False,
        )

        if not accepted:
            LOGGER.info("No changes to %s", path)
            return report

        if not await self._review.review_file(path, removed, modified):
            LOGGER.info("Skipping file %s", path)
            return report

        apply_results(filter_list, accepted, comment_out=self._config.comment_out)
        self._storage.write(path, filter_list.generate())
        LOGGER.info("Applied %s modifications to %s", len(accepted), path)
        return FileReport(
            path=path,
            rules_total=report.rules_total,
            issues=report.issues,
            removed=removed,
            modified=modified,
            written=True,
        )
