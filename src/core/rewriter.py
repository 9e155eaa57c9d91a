"""Rule rewrite decision engine (core domain).

Maps a parsed rule and its dead domains to one of three verdicts: leave the
rule alone, remove it, or replace it with a narrower text. The engine never
mutates the rule it is given; edited copies are built with
`dataclasses.replace` and turned back into text with `generate_rule`.

The one rule that overrides everything else: when dropping dead entries
would leave a previously scoped rule without any permitted domain, the rule
is removed. Rewriting it would silently make it apply to every site.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, List, Tuple

from core.extractor import extract_pattern_domain, is_domain_modifier, modifier_domains
from core.filter_rules import (
    PIPE_SEPARATOR,
    DomainEntry,
    Modifier,
    Rule,
    RuleCategory,
    generate_rule,
    join_domain_list,
)
from core.models import Verdict


def _has_permitted(entries: Iterable[DomainEntry]) -> bool:
    return any(not entry.negated for entry in entries)


def _rewrite_network(rule: Rule, dead: frozenset, found: Tuple[str, ...]) -> Verdict:
    pattern_domain = extract_pattern_domain(rule.pattern)
    if pattern_domain is not None and pattern_domain in dead:
        return Verdict.remove(found)

    if not rule.modifiers:
        return Verdict.no_change()

    modifiers: List[Modifier] = []
    changed = False
    for modifier in rule.modifiers:
        if not is_domain_modifier(modifier):
            modifiers.append(modifier)
            continue

        entries = modifier_domains(modifier)
        kept = [entry for entry in entries if entry.domain not in dead]
        if len(kept) == len(entries):
            modifiers.append(modifier)
            continue

        if _has_permitted(entries) and not _has_permitted(kept):
            # ||example.org^$domain=example.org -> ||example.org^ would turn global.
            return Verdict.remove(found)

        changed = True
        if kept:
            modifiers.append(replace(modifier, value=join_domain_list(kept, PIPE_SEPARATOR)))

    if not changed:
        return Verdict.no_change()

    edited = replace(rule, modifiers=tuple(modifiers) or None, text=None)
    return Verdict.rewrite(generate_rule(edited), found)


def _rewrite_cosmetic(rule: Rule, dead: frozenset, found: Tuple[str, ...]) -> Verdict:
    if not rule.domains:
        return Verdict.no_change()

    kept = tuple(entry for entry in rule.domains if entry.domain not in dead)
    if len(kept) == len(rule.domains):
        return Verdict.no_change()

    if _has_permitted(rule.domains) and not _has_permitted(kept):
        # example.org##banner -> ##banner would turn global.
        return Verdict.remove(found)

    if not kept and rule.exception:
        # example.org#@#banner -> #@#banner changes what the exception means.
        return Verdict.remove(found)

    edited = replace(rule, domains=kept, text=None)
    return Verdict.rewrite(generate_rule(edited), found)


def rewrite_rule(rule: Rule, dead_domains: Iterable[str]) -> Verdict:
    """Decide what to do with `rule` given the dead domains it references."""

    found = tuple(dead_domains)
    if not found:
        return Verdict.no_change()

    dead = frozenset(found)
    if rule.category is RuleCategory.NETWORK:
        return _rewrite_network(rule, dead, found)
    if rule.category is RuleCategory.COSMETIC:
        return _rewrite_cosmetic(rule, dead, found)
    raise ValueError(f"Unsupported rule category: {rule.category.value}")
