"""
Version Value Object

Architectural Intent:
- Parses and compares dotted numeric version strings
- Components compare as integers, never lexically ("1.0.10" > "1.0.7")
- Shorter versions are right-padded with zeros ("1.0" == "1.0.0")

Pre-release policy:
- "1.2.0-rc.1" splits into numeric core (1, 2, 0) and qualifier "rc.1"
- For equal cores, a release orders above any pre-release
- Qualifiers compare identifier by identifier; numeric identifiers compare
  numerically and order below alphanumeric ones; a shorter prefix is lower
- "+build" metadata is ignored
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from functools import total_ordering

from fleetwright.domain.errors import ParseError


class Ordering(Enum):
    LESS = -1
    EQUAL = 0
    GREATER = 1

    @classmethod
    def of(cls, value: int) -> "Ordering":
        if value < 0:
            return cls.LESS
        if value > 0:
            return cls.GREATER
        return cls.EQUAL


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _is_number(part: str) -> bool:
    # str.isdigit alone accepts superscripts and other non-ASCII digits
    return part.isascii() and part.isdigit()


def _compare_qualifiers(a: str, b: str) -> int:
    if a == b:
        return 0
    # A release (no qualifier) outranks any pre-release of the same core
    if not a:
        return 1
    if not b:
        return -1

    for left, right in zip(a.split("."), b.split(".")):
        if left == right:
            continue
        if _is_number(left) and _is_number(right):
            result = _cmp(int(left), int(right))
            if result:
                return result
            continue
        if _is_number(left):
            return -1
        if _is_number(right):
            return 1
        return _cmp(left, right)

    return _cmp(len(a.split(".")), len(b.split(".")))


@total_ordering
@dataclass(frozen=True, eq=False)
class Version:
    """
    Value Object for a dotted numeric version with an optional qualifier.
    """
    components: tuple[int, ...]
    prerelease: str = ""

    def __post_init__(self) -> None:
        if not self.components:
            raise ParseError("Version must have at least one component")
        if any(c < 0 for c in self.components):
            raise ParseError(f"Negative version component in {self.components}")

    @staticmethod
    def parse(text: str) -> "Version":
        """
        Parses '1.2.3', 'v1.2.3', '1.2' or '1.2.3-rc.1+build5' into a Version.
        Raises ParseError if any numeric component is not a number.
        """
        if text is None:
            raise ParseError("Version string is missing")
        raw = text.strip()
        if raw[:1] in ("v", "V"):
            raw = raw[1:]
        raw = raw.split("+", 1)[0]
        core, _, qualifier = raw.partition("-")
        if not core:
            raise ParseError(f"Empty version string: {text!r}")
        if qualifier == "" and raw.endswith("-"):
            raise ParseError(f"Empty pre-release qualifier in {text!r}")

        components = []
        for part in core.split("."):
            if not _is_number(part):
                raise ParseError(
                    f"Non-numeric version component {part!r} in {text!r}"
                )
            components.append(int(part))

        return Version(components=tuple(components), prerelease=qualifier)

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def _padded(self, length: int) -> tuple[int, ...]:
        return self.components + (0,) * (length - len(self.components))

    def compare(self, other: "Version") -> Ordering:
        length = max(len(self.components), len(other.components))
        for left, right in zip(self._padded(length), other._padded(length)):
            if left != right:
                return Ordering.of(_cmp(left, right))
        return Ordering.of(_compare_qualifiers(self.prerelease, other.prerelease))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) is Ordering.EQUAL

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) is Ordering.LESS

    def __hash__(self) -> int:
        core = list(self.components)
        while len(core) > 1 and core[-1] == 0:
            core.pop()
        qualifier = tuple(
            int(p) if _is_number(p) else p for p in self.prerelease.split(".")
        ) if self.prerelease else ()
        return hash((tuple(core), qualifier))

    def __str__(self) -> str:
        core = ".".join(str(c) for c in self.components)
        return f"{core}-{self.prerelease}" if self.prerelease else core


def compare_versions(a: str, b: str) -> Ordering:
    """Compare two version strings numerically."""
    return Version.parse(a).compare(Version.parse(b))
