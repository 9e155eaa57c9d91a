"""Filter rule parsing and generation (core domain).

Only the parts of the AdGuard rule grammar that carry domains are modelled:
network rules (pattern + modifiers) and cosmetic rules (domain list +
separator + body). Everything else is kept as opaque text so a filter list
that was not edited regenerates byte-for-byte.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import re
from typing import Iterable, List, Optional, Tuple

PIPE_SEPARATOR = "|"
COMMA_SEPARATOR = ","

# Order matters: "#$#" and "#%#" must win over the plain "##" family.
_COSMETIC_SEPARATOR_RE = re.compile(r"#@?\$\??#|#@?\??#|#@?%#|\$@?\$")
_COSMETIC_DOMAINS_RE = re.compile(r"^[^\s|^/#$@]*$")
_MODIFIER_START_RE = re.compile(r"^[~a-zA-Z0-9_-]")


class RuleSyntaxError(ValueError):
    """Raised for a rule that cannot be decomposed into its parts."""


class RuleCategory(str, Enum):
    NETWORK = "Network"
    COSMETIC = "Cosmetic"
    COMMENT = "Comment"
    EMPTY = "Empty"


@dataclass(frozen=True)
class DomainEntry:
    """One entry of a `$domain=a|~b` value or an `a,~b##...` domain list."""

    domain: str
    negated: bool

    @property
    def is_pattern(self) -> bool:
        """Regex literals and TLD wildcards are kept as-is and never checked."""

        return "*" in self.domain or (
            len(self.domain) > 1 and self.domain.startswith("/") and self.domain.endswith("/")
        )

    def render(self) -> str:
        return f"~{self.domain}" if self.negated else self.domain


@dataclass(frozen=True)
class Modifier:
    name: str
    value: Optional[str] = None
    negated: bool = False

    def render(self) -> str:
        prefix = "~" if self.negated else ""
        if self.value is None:
            return f"{prefix}{self.name}"
        return f"{prefix}{self.name}={self.value}"


@dataclass(frozen=True)
class Rule:
    """Parsed filter rule.

    `text` holds the original line and is what `generate_rule` returns for an
    untouched rule. Edited copies are made with `dataclasses.replace(...,
    text=None)` and are composed from their parts instead. `indent` and
    `trailing` keep the whitespace around the rule so edits do not lose it.
    """

    category: RuleCategory
    text: Optional[str]
    exception: bool = False
    pattern: Optional[str] = None
    modifiers: Optional[Tuple[Modifier, ...]] = None
    domains: Optional[Tuple[DomainEntry, ...]] = None
    separator: str = ""
    body: str = ""
    prefix: str = ""
    indent: str = ""
    trailing: str = ""


def _split_unescaped(value: str, separator: str) -> List[str]:
    parts: List[str] = []
    current: List[str] = []
    escaped = False
    for ch in value:
        if escaped:
            current.append(ch)
            escaped = False
            continue
        if ch == "\\":
            current.append(ch)
            escaped = True
            continue
        if ch == separator:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def split_domain_list(value: str, separator: str) -> List[DomainEntry]:
    """Decompose a domain list; escaped separators inside regexes do not split."""

    entries: List[DomainEntry] = []
    for raw in _split_unescaped(value, separator):
        raw = raw.strip()
        negated = raw.startswith("~")
        domain = raw[1:] if negated else raw
        if not domain:
            continue
        entries.append(DomainEntry(domain=domain, negated=negated))
    return entries


def join_domain_list(entries: Iterable[DomainEntry], separator: str) -> str:
    return separator.join(entry.render() for entry in entries)


def _find_modifiers_start(text: str) -> int:
    """Return the index of the `$` opening the modifier block, or -1."""

    index = len(text) - 1
    while index >= 0:
        if text[index] == "$":
            backslashes = 0
            cursor = index - 1
            while cursor >= 0 and text[cursor] == "\\":
                backslashes += 1
                cursor -= 1
            if backslashes % 2 == 0:
                if _MODIFIER_START_RE.match(text[index + 1 :]):
                    return index
        index -= 1
    return -1


def _parse_modifier(raw: str) -> Modifier:
    raw = raw.strip()
    negated = raw.startswith("~")
    if negated:
        raw = raw[1:]
    name, sep, value = raw.partition("=")
    name = name.strip()
    if not name:
        raise RuleSyntaxError("Empty modifier name")
    return Modifier(name=name, value=value if sep else None, negated=negated)


def _parse_network(text: str) -> Rule:
    body = text
    exception = body.startswith("@@")
    if exception:
        body = body[2:]

    start = _find_modifiers_start(body)
    if start < 0:
        return Rule(category=RuleCategory.NETWORK, text=text, exception=exception, pattern=body)

    pattern = body[:start]
    block = body[start + 1 :]
    modifiers = tuple(_parse_modifier(part) for part in _split_unescaped(block, ","))
    return Rule(
        category=RuleCategory.NETWORK,
        text=text,
        exception=exception,
        pattern=pattern,
        modifiers=modifiers,
    )


def _parse_cosmetic(text: str) -> Optional[Rule]:
    prefix = ""
    rest = text
    if rest.startswith("[$"):
        close = rest.find("]")
        if close < 0:
            raise RuleSyntaxError("Unterminated cosmetic modifier block")
        prefix, rest = rest[: close + 1], rest[close + 1 :]

    for match in _COSMETIC_SEPARATOR_RE.finditer(rest):
        domains_part = rest[: match.start()]
        if not _COSMETIC_DOMAINS_RE.match(domains_part):
            continue
        body = rest[match.end() :]
        if not body.strip():
            raise RuleSyntaxError("Empty cosmetic rule body")
        separator = match.group(0)
        domains = tuple(split_domain_list(domains_part, COMMA_SEPARATOR)) if domains_part else None
        return Rule(
            category=RuleCategory.COSMETIC,
            text=text,
            exception="@" in separator,
            domains=domains,
            separator=separator,
            body=body,
            prefix=prefix,
        )

    if prefix:
        raise RuleSyntaxError("Cosmetic modifiers without a cosmetic separator")
    return None


def parse_rule(text: str) -> Rule:
    """Parse a single filter list line."""

    stripped = text.strip()
    if not stripped:
        return Rule(category=RuleCategory.EMPTY, text=text)
    if stripped.startswith("!"):
        return Rule(category=RuleCategory.COMMENT, text=text)
    if stripped.startswith("[") and stripped.endswith("]") and not stripped.startswith("[$"):
        # List header, e.g. "[Adblock Plus 2.0]".
        return Rule(category=RuleCategory.COMMENT, text=text)

    cosmetic = _parse_cosmetic(stripped)
    if cosmetic is not None:
        return cosmetic if stripped == text else _with_text(cosmetic, text)

    if stripped.startswith("#"):
        return Rule(category=RuleCategory.COMMENT, text=text)

    network = _parse_network(stripped)
    return network if stripped == text else _with_text(network, text)


def _with_text(rule: Rule, text: str) -> Rule:
    indent = text[: len(text) - len(text.lstrip())]
    trailing = text[len(text.rstrip()) :]
    return replace(rule, text=text, indent=indent, trailing=trailing)


def generate_rule(rule: Rule) -> str:
    """Return rule text; untouched rules reproduce their original line."""

    if rule.text is not None:
        return rule.text
    composed = _compose(rule)
    if not composed:
        return ""
    return rule.indent + composed + rule.trailing


def _compose(rule: Rule) -> str:
    if rule.category is RuleCategory.NETWORK:
        parts = ["@@" if rule.exception else "", rule.pattern or ""]
        if rule.modifiers:
            parts.append("$" + ",".join(modifier.render() for modifier in rule.modifiers))
        return "".join(parts)

    if rule.category is RuleCategory.COSMETIC:
        domains = join_domain_list(rule.domains or (), COMMA_SEPARATOR)
        return f"{rule.prefix}{domains}{rule.separator}{rule.body}"

    return ""


@dataclass
class FilterLine:
    """One physical line of a filter list with its original line ending."""

    text: str
    ending: str


class FilterList:
    """Line-oriented view of a whole filter list file."""

    def __init__(self, lines: List[FilterLine]) -> None:
        self.lines = lines

    @classmethod
    def parse(cls, content: str) -> "FilterList":
        lines: List[FilterLine] = []
        chunks = content.split("\n")
        for chunk in chunks[:-1]:
            if chunk.endswith("\r"):
                lines.append(FilterLine(text=chunk[:-1], ending="\r\n"))
            else:
                lines.append(FilterLine(text=chunk, ending="\n"))
        if chunks[-1]:
            lines.append(FilterLine(text=chunks[-1], ending=""))
        return cls(lines)

    def __len__(self) -> int:
        return len(self.lines)

    def generate(self) -> str:
        return "".join(line.text + line.ending for line in self.lines)
