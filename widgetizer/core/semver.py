"""Strict MAJOR.MINOR.PATCH version helpers.

Theme versions are plain dotted triples: no ``v`` prefix, no pre-release or
build suffix. Comparison is numeric, so ``1.9.0 < 1.10.0``. Strings that do
not parse are never an error here; they sort after every valid version and
compare equal to one another.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import cmp_to_key
from typing import Iterable

_VERSION_RE = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")


@dataclass(frozen=True, slots=True, order=True)
class Version:
    """A parsed theme version."""

    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse(value: object) -> Version | None:
    """Return the parsed version, or None when *value* is not a strict triple."""
    if not isinstance(value, str):
        return None
    match = _VERSION_RE.fullmatch(value)
    if match is None:
        return None
    return Version(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def is_valid(value: object) -> bool:
    return parse(value) is not None


def compare(a: object, b: object) -> int:
    """Return -1, 0 or 1. Invalid versions compare greater than valid ones."""
    parsed_a = parse(a)
    parsed_b = parse(b)
    if parsed_a is None and parsed_b is None:
        return 0
    if parsed_a is None:
        return 1
    if parsed_b is None:
        return -1
    if parsed_a == parsed_b:
        return 0
    return -1 if parsed_a < parsed_b else 1


def sort_ascending(versions: Iterable[str]) -> list[str]:
    """Return a new ascending list; invalid entries end up after valid ones."""
    return sorted(versions, key=cmp_to_key(compare))


def is_newer(current: object, candidate: object) -> bool:
    """True when *candidate* sorts after *current*."""
    return compare(current, candidate) < 0


def latest(versions: Iterable[str] | None) -> str | None:
    """Return the highest entry, or None for an empty input.

    Invalid strings sort last, so they win here when present. Callers that
    can receive unvalidated input must check the result with ``is_valid``.
    """
    if not versions:
        return None
    ordered = sort_ascending(versions)
    if not ordered:
        return None
    return ordered[-1]
