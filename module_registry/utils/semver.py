"""Semantic versioning utilities."""

import re
from functools import total_ordering
from typing import Optional, Tuple

_VERSION_RE = re.compile(
    r'^v?(?P<segments>[0-9]+(?:\.[0-9]+)*?)'
    r'(?:-(?P<pre>[0-9]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*)'
    r'|-?(?P<alpha>[A-Za-z\-~]+[0-9A-Za-z\-~]*(?:\.[0-9A-Za-z\-~]+)*))?'
    r'(?:\+(?P<metadata>[0-9A-Za-z\-~]+(?:\.[0-9A-Za-z\-~]+)*))?\Z'
)

# Versions always carry at least major.minor.patch
MIN_SEGMENTS = 3


@total_ordering
class Version:
    """
    A parsed version number.

    Accepts an optional leading "v", any number of numeric segments
    (padded to three), an optional prerelease and optional build metadata.
    Ordering and equality follow semver precedence, so build metadata and
    trailing zero segments never make two versions differ.
    """

    __slots__ = ("segments", "prerelease", "metadata", "original")

    def __init__(
        self,
        segments: Tuple[int, ...],
        prerelease: str = "",
        metadata: str = "",
        original: Optional[str] = None,
    ):
        if len(segments) < MIN_SEGMENTS:
            segments = tuple(segments) + (0,) * (MIN_SEGMENTS - len(segments))
        self.segments = tuple(segments)
        self.prerelease = prerelease
        self.metadata = metadata
        self.original = original if original is not None else str(self)

    @classmethod
    def parse(cls, version: str) -> "Version":
        match = _VERSION_RE.match(version)
        if not match:
            raise ValueError(f"Invalid version: {version!r}")
        segments = tuple(int(s) for s in match.group("segments").split("."))
        prerelease = match.group("pre") or match.group("alpha") or ""
        return cls(segments, prerelease, match.group("metadata") or "", original=version)

    def compare(self, other: "Version") -> int:
        """Return -1, 0 or 1 as self sorts before, equal to or after other."""
        width = max(len(self.segments), len(other.segments))
        mine = self.segments + (0,) * (width - len(self.segments))
        theirs = other.segments + (0,) * (width - len(other.segments))
        if mine != theirs:
            return -1 if mine < theirs else 1
        return _compare_prereleases(self.prerelease, other.prerelease)

    def __eq__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) == 0

    def __lt__(self, other):
        if not isinstance(other, Version):
            return NotImplemented
        return self.compare(other) < 0

    def __hash__(self):
        segments = list(self.segments)
        while segments and segments[-1] == 0:
            segments.pop()
        prerelease = tuple(
            int(part) if part.isdigit() else part
            for part in self.prerelease.split(".")
        ) if self.prerelease else ()
        return hash((tuple(segments), prerelease))

    def __str__(self):
        text = ".".join(str(s) for s in self.segments)
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.metadata:
            text += f"+{self.metadata}"
        return text

    def __repr__(self):
        return f"Version({str(self)!r})"


def _compare_prereleases(mine: str, theirs: str) -> int:
    if mine == theirs:
        return 0
    # A release outranks any of its prereleases
    if not mine:
        return 1
    if not theirs:
        return -1

    mine_parts = mine.split(".")
    theirs_parts = theirs.split(".")
    for a, b in zip(mine_parts, theirs_parts):
        result = _compare_identifiers(a, b)
        if result:
            return result

    if len(mine_parts) == len(theirs_parts):
        return 0
    return -1 if len(mine_parts) < len(theirs_parts) else 1


def _compare_identifiers(a: str, b: str) -> int:
    if a == b:
        return 0
    a_numeric, b_numeric = a.isdigit(), b.isdigit()
    if a_numeric and b_numeric:
        a_int, b_int = int(a), int(b)
        if a_int == b_int:
            return 0
        return -1 if a_int < b_int else 1
    if a_numeric:
        return -1
    if b_numeric:
        return 1
    return -1 if a < b else 1


def parse(version: str) -> Version:
    """Parse a version string, raising ValueError if it is malformed."""
    return Version.parse(version)


def try_parse(version: str) -> Optional[Version]:
    """Parse a version string, returning None if it is malformed."""
    try:
        return Version.parse(version)
    except ValueError:
        return None
