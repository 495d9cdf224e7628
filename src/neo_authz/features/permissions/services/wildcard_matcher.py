"""Wildcard permission matching.

A granted permission such as ``users.*`` covers a family of names. Names are
split into segments on any configured delimiter character; matching is
segment-wise, case-sensitive and exact for literal segments.

- ``*`` alone matches every name.
- A trailing ``*`` segment matches one or more remaining segments
  (``users.*`` covers ``users.view`` and ``users.create.bulk``).
- A ``*`` segment elsewhere matches exactly one segment (``*.view``).
- ``*`` inside a segment matches a non-empty run of characters (``art*:view``).
- Subparts separated by ``,`` are alternatives (``articles:edit,delete``).
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Sequence, Tuple, Union

from ....config.constants import WILDCARD_PATTERN_CACHE_SIZE
from ....config.settings import WildcardSettings

SegmentAlternative = Union[str, Pattern]


@dataclass(frozen=True)
class CompiledPattern:
    segments: Tuple[Tuple[SegmentAlternative, ...], ...]
    trailing_wildcard: bool = False
    match_all: bool = False

    def matches(self, name_segments: Sequence[str]) -> bool:
        if self.match_all:
            return True
        if self.trailing_wildcard:
            if len(name_segments) <= len(self.segments):
                return False
            if not all(name_segments[len(self.segments):]):
                return False
        elif len(name_segments) != len(self.segments):
            return False
        for alternatives, segment in zip(self.segments, name_segments):
            if not _segment_matches(alternatives, segment):
                return False
        return True


def _segment_matches(alternatives: Tuple[SegmentAlternative, ...], segment: str) -> bool:
    for alternative in alternatives:
        if isinstance(alternative, str):
            if alternative == segment:
                return True
        elif alternative.fullmatch(segment):
            return True
    return False


def _split(value: str, delimiters: str) -> List[str]:
    return re.split(f"[{re.escape(delimiters)}]", value)


@lru_cache(maxsize=WILDCARD_PATTERN_CACHE_SIZE)
def compile_pattern(pattern: str, delimiters: str, token: str, subpart_delimiter: str) -> CompiledPattern:
    """Parse a granted pattern once; results are cached per configuration."""
    if pattern == token:
        return CompiledPattern(segments=(), match_all=True)

    raw_segments = _split(pattern, delimiters)
    trailing = len(raw_segments) > 1 and raw_segments[-1] == token
    if trailing:
        raw_segments = raw_segments[:-1]

    segments = []
    for raw in raw_segments:
        alternatives: List[SegmentAlternative] = []
        for part in raw.split(subpart_delimiter):
            if part == token:
                alternatives.append(re.compile(r".+"))
            elif token in part:
                alternatives.append(re.compile(".+".join(re.escape(p) for p in part.split(token))))
            else:
                alternatives.append(part)
        segments.append(tuple(alternatives))
    return CompiledPattern(segments=tuple(segments), trailing_wildcard=trailing)


class WildcardMatcher:
    """Matches requested permission names against granted patterns."""

    def __init__(self, settings: Optional[WildcardSettings] = None):
        self.settings = settings or WildcardSettings()

    @property
    def enabled(self) -> bool:
        return self.settings.enabled

    def contains_wildcard(self, pattern: str) -> bool:
        return self.settings.token in pattern

    def is_pattern(self, pattern: str) -> bool:
        """A wildcard or a subpart list; plain names only match themselves."""
        return self.contains_wildcard(pattern) or self.settings.subpart_delimiter in pattern

    def compile(self, pattern: str) -> CompiledPattern:
        return compile_pattern(
            pattern,
            self.settings.delimiters,
            self.settings.token,
            self.settings.subpart_delimiter,
        )

    def matches(self, pattern: str, name: str) -> bool:
        if pattern == name:
            return True
        if not self.is_pattern(pattern):
            return False
        return self.compile(pattern).matches(_split(name, self.settings.delimiters))

    def matches_any(self, patterns: Iterable[str], name: str) -> Optional[str]:
        """First pattern covering ``name``, or None."""
        for pattern in patterns:
            if self.matches(pattern, name):
                return pattern
        return None

    def expand(self, pattern: str, names: Iterable[str]) -> List[str]:
        """Concrete names out of ``names`` covered by ``pattern``."""
        return [name for name in names if self.matches(pattern, name)]

    @staticmethod
    def clear_cache() -> None:
        compile_pattern.cache_clear()
