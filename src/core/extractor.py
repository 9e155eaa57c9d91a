"""Candidate domain extraction from parsed rules (core domain)."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

from core.filter_rules import (
    PIPE_SEPARATOR,
    DomainEntry,
    Modifier,
    Rule,
    RuleCategory,
    split_domain_list,
)

# Network modifiers whose values are domain lists.
DOMAIN_MODIFIERS = ("domain", "denyallow", "from", "to")

_DOMAIN_CHARS_RE = re.compile(r"^[a-z0-9.-]+$", re.IGNORECASE)
_PATTERN_DOMAIN_RE = re.compile(
    r"^(?:\|\||\|?(?:[a-z][a-z0-9+.-]*)?://)([a-z0-9.-]+)(?=[\^/:|?$]|$)",
    re.IGNORECASE,
)


def is_valid_domain(domain: str) -> bool:
    """Return True for names the liveness service can say something about.

    Rejects .onion names, IPv4 literals (and partial IPv4 prefixes),
    single-label names and anything outside [a-z0-9.-].
    """

    if not _DOMAIN_CHARS_RE.match(domain):
        return False
    name = domain[:-1] if domain.endswith(".") else domain
    labels = name.split(".")
    if len(labels) < 2 or not all(labels):
        return False
    if name.lower().endswith(".onion"):
        return False
    if all(label.isdigit() for label in labels):
        return False
    return True


def unique(items: Iterable[str]) -> List[str]:
    """Deduplicate while keeping the first-seen order."""

    return list(dict.fromkeys(items))


def extract_pattern_domain(pattern: Optional[str]) -> Optional[str]:
    """Return the host a network pattern is anchored to, if any.

    Handles `||host^`, `||host/path`, `://host/`, `scheme://host` and
    `|scheme://host`.
    """

    if not pattern:
        return None
    match = _PATTERN_DOMAIN_RE.match(pattern)
    if not match:
        return None
    return match.group(1)


def modifier_domains(modifier: Modifier) -> List[DomainEntry]:
    if not modifier.value:
        return []
    return split_domain_list(modifier.value, PIPE_SEPARATOR)


def is_domain_modifier(modifier: Modifier) -> bool:
    return modifier.name in DOMAIN_MODIFIERS and not modifier.negated


def _network_domains(rule: Rule) -> List[str]:
    domains: List[str] = []

    pattern_domain = extract_pattern_domain(rule.pattern)
    if pattern_domain:
        domains.append(pattern_domain)

    for modifier in rule.modifiers or ():
        if not is_domain_modifier(modifier):
            continue
        domains.extend(entry.domain for entry in modifier_domains(modifier) if not entry.is_pattern)

    return domains


def _cosmetic_domains(rule: Rule) -> List[str]:
    # TODO: cosmetic [$domain=...] modifiers carry domains as well.
    return [entry.domain for entry in rule.domains or () if not entry.is_pattern]


def extract_rule_domains(rule: Rule) -> List[str]:
    """Return the deduplicated, valid candidate domains of one rule."""

    if rule.category is RuleCategory.NETWORK:
        candidates = _network_domains(rule)
    elif rule.category is RuleCategory.COSMETIC:
        candidates = _cosmetic_domains(rule)
    else:
        return []
    return [domain for domain in unique(candidates) if is_valid_domain(domain)]
