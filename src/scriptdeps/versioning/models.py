"""Data models for package versions and references."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Optional


_VERSION = r"\d+(?:\.\d+){1,3}(?:-[0-9A-Za-z.\-]+)?(?:\+[0-9A-Za-z.\-]+)?"
_PINNED_RE = re.compile(rf"^(?:\[{_VERSION}\]|{_VERSION})$")


class PackageVersion:
    """A raw package version string with pinned/floating classification.

    A version is pinned when it names exactly one release: two to four
    numeric components with optional prerelease/build suffixes, optionally
    wrapped in one balanced pair of square brackets. Everything else
    (wildcards, ranges, bare majors, empty) floats.
    """

    __slots__ = ("value",)

    def __init__(self, value: Optional[str]):
        self.value = value

    @property
    def is_pinned(self) -> bool:
        if not self.value:
            return False
        return bool(_PINNED_RE.match(self.value.strip()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageVersion):
            return NotImplemented
        if self.value is None or other.value is None:
            return self.value is None and other.value is None
        return self.value.lower() == other.value.lower()

    def __hash__(self) -> int:
        return hash(self.value.lower() if self.value is not None else None)

    def __str__(self) -> str:
        return self.value or ""

    def __repr__(self) -> str:
        return f"PackageVersion({self.value!r})"


@total_ordering
@dataclass(eq=False)
class PackageReference:
    """A package requested by name and version.

    Identity and ordering use the name only, compared case-insensitively,
    so a later reference to the same package replaces an earlier one.
    """
    name: str
    version: PackageVersion = field(default_factory=lambda: PackageVersion(""))

    def __post_init__(self) -> None:
        if not isinstance(self.version, PackageVersion):
            self.version = PackageVersion(self.version)

    @property
    def key(self) -> str:
        return self.name.lower()

    @property
    def is_pinned(self) -> bool:
        return self.version.is_pinned

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageReference):
            return NotImplemented
        return self.key == other.key

    def __lt__(self, other: "PackageReference") -> bool:
        return self.key < other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.name}, {self.version}" if self.version.value else self.name


@dataclass(frozen=True)
class AssemblyReference:
    """A plain assembly reference: a file path or an assembly name."""
    path: str
