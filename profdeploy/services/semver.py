# SPDX-License-Identifier: MIT
"""Semantic versions and npm-style version ranges.

Supported range syntax:
    *, x, ""                  any version
    1.2.3, =1.2.3, v1.2.3     exact
    1.x, 1.2, 1.2.*           wildcard (x-range)
    >1.2.3 >=1.2 <2 <=2.1     comparators (partial versions allowed)
    ^1.2.3 ~1.2.3             caret / tilde
    1.2.3 - 2.0.0             inclusive hyphen range
    >=1.0.0 <2.0.0            space separated: all must hold
    ^1.0.0 || ^2.0.0          alternatives

Only stable `MAJOR.MINOR.PATCH` versions take part; pre-release tags never
satisfy a range.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

__all__ = [
    "SemVer",
    "SemverRange",
    "parse_range",
    "parse_version",
]

BumpKind = Literal["major", "minor", "patch"]

_VERSION_RE = re.compile(r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")
_PARTIAL_RE = re.compile(
    r"^v?(\d+|[xX*])(?:\.(\d+|[xX*]))?(?:\.(\d+|[xX*]))?$"
)
_COMPARATOR_RE = re.compile(r"^(\^|~|>=|<=|>|<|=)?\s*(.*)$")


@dataclass(frozen=True, slots=True, order=True)
class SemVer:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def to_tag(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"

    def bump(self, kind: BumpKind) -> SemVer:
        match kind:
            case "major":
                return SemVer(self.major + 1, 0, 0)
            case "minor":
                return SemVer(self.major, self.minor + 1, 0)
            case "patch":
                return SemVer(self.major, self.minor, self.patch + 1)
            case _:
                raise AssertionError(f"unexpected bump kind: {kind}")


def parse_version(text: str) -> SemVer | None:
    """Parse `1.2.3` or `v1.2.3`; anything else (including pre-releases) is None."""
    m = _VERSION_RE.match(text.strip())
    if m is None:
        return None
    return SemVer(int(m.group(1)), int(m.group(2)), int(m.group(3)))


@dataclass(frozen=True, slots=True)
class _Partial:
    """A possibly incomplete version: `1`, `1.2`, `1.2.x`."""

    major: int | None
    minor: int | None
    patch: int | None

    @property
    def floor(self) -> SemVer:
        return SemVer(self.major or 0, self.minor or 0, self.patch or 0)


def _parse_partial(text: str) -> _Partial | None:
    m = _PARTIAL_RE.match(text)
    if m is None:
        return None
    parts: list[int | None] = []
    wildcard = False
    for group in m.groups():
        if group is None or group in {"x", "X", "*"}:
            wildcard = True
            parts.append(None)
        elif wildcard:
            # `1.x.3` is not a valid partial
            return None
        else:
            parts.append(int(group))
    return _Partial(parts[0], parts[1], parts[2])


Op = Literal[">", ">=", "<", "<=", "="]


@dataclass(frozen=True, slots=True)
class _Comparator:
    op: Op
    version: SemVer

    def test(self, v: SemVer) -> bool:
        match self.op:
            case ">":
                return v > self.version
            case ">=":
                return v >= self.version
            case "<":
                return v < self.version
            case "<=":
                return v <= self.version
            case "=":
                return v == self.version


def _upper_of(p: _Partial) -> SemVer | None:
    """Exclusive upper bound of the x-range a partial covers."""
    if p.major is None:
        return None
    if p.minor is None:
        return SemVer(p.major + 1, 0, 0)
    if p.patch is None:
        return SemVer(p.major, p.minor + 1, 0)
    return None


def _x_range(p: _Partial) -> list[_Comparator]:
    if p.major is None:
        return []
    upper = _upper_of(p)
    if upper is None:
        return [_Comparator("=", p.floor)]
    return [_Comparator(">=", p.floor), _Comparator("<", upper)]


def _tilde(p: _Partial) -> list[_Comparator]:
    if p.major is None:
        return []
    if p.minor is None:
        return [_Comparator(">=", p.floor), _Comparator("<", SemVer(p.major + 1, 0, 0))]
    return [_Comparator(">=", p.floor), _Comparator("<", SemVer(p.major, p.minor + 1, 0))]


def _caret(p: _Partial) -> list[_Comparator]:
    if p.major is None:
        return []
    floor = p.floor
    if p.major > 0 or p.minor is None:
        upper = SemVer(p.major + 1, 0, 0)
    elif p.minor > 0 or p.patch is None:
        upper = SemVer(0, p.minor + 1, 0)
    else:
        upper = SemVer(0, 0, p.patch + 1)
    return [_Comparator(">=", floor), _Comparator("<", upper)]


def _comparators(op: str, p: _Partial) -> list[_Comparator]:
    match op:
        case "^":
            return _caret(p)
        case "~":
            return _tilde(p)
        case "" | "=":
            return _x_range(p)
        case ">=":
            return [_Comparator(">=", p.floor)] if p.major is not None else []
        case "<":
            if p.major is None:
                # `<*` matches nothing
                return [_Comparator("<", SemVer(0, 0, 0))]
            return [_Comparator("<", p.floor)]
        case ">":
            if p.major is None:
                return [_Comparator("<", SemVer(0, 0, 0))]
            upper = _upper_of(p)
            if upper is not None:
                return [_Comparator(">=", upper)]
            return [_Comparator(">", p.floor)]
        case "<=":
            if p.major is None:
                return []
            upper = _upper_of(p)
            if upper is not None:
                return [_Comparator("<", upper)]
            return [_Comparator("<=", p.floor)]
    raise AssertionError(f"unexpected operator: {op}")


def _tokens(alternative: str) -> list[str]:
    """Split on whitespace, gluing a bare operator to the version after it."""
    out: list[str] = []
    pending = ""
    for raw in alternative.split():
        if raw in {"^", "~", ">=", "<=", ">", "<", "="}:
            pending += raw
            continue
        out.append(pending + raw)
        pending = ""
    if pending:
        out.append(pending)
    return out


def _parse_alternative(text: str) -> list[_Comparator] | None:
    text = text.strip()
    hyphen = re.match(r"^(\S+)\s+-\s+(\S+)$", text)
    if hyphen:
        low = _parse_partial(hyphen.group(1))
        high = _parse_partial(hyphen.group(2))
        if low is None or high is None:
            return None
        return _comparators(">=", low) + _comparators("<=", high)

    comparators: list[_Comparator] = []
    for token in _tokens(text):
        m = _COMPARATOR_RE.match(token)
        if m is None:
            return None
        partial = _parse_partial(m.group(2).strip())
        if partial is None:
            return None
        comparators.extend(_comparators(m.group(1) or "", partial))
    return comparators


@dataclass(frozen=True, slots=True)
class SemverRange:
    """A parsed range: a list of alternatives, each a list of comparators."""

    expression: str
    alternatives: tuple[tuple[_Comparator, ...], ...]

    def satisfied_by(self, version: SemVer) -> bool:
        return any(all(c.test(version) for c in alt) for alt in self.alternatives)

    def matches_tag(self, tag: str) -> bool:
        version = parse_version(tag)
        return version is not None and self.satisfied_by(version)


def parse_range(expression: str) -> SemverRange | None:
    """Parse a range expression, None if it is malformed."""
    alternatives: list[tuple[_Comparator, ...]] = []
    for part in expression.split("||"):
        comparators = _parse_alternative(part)
        if comparators is None:
            return None
        alternatives.append(tuple(comparators))
    return SemverRange(expression=expression, alternatives=tuple(alternatives))
