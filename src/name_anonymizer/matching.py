"""Matching strategies for the redaction pass.

Both strategies honour the same contract:

  - originals are tried in specificity order (longest first, then
    lexicographic), so a short original never clobbers a longer one
  - matching is case-insensitive
  - matches are whole tokens: never preceded or followed by a word
    character, so ``Node1`` leaves ``Node10`` and ``mynode1x`` alone

``SequentialMatcher`` runs one substitution per original over the running
text.  ``CombinedMatcher`` compiles a single alternation and scans the
text once; it never re-scans text it has already replaced.
"""

from __future__ import annotations
import re
from functools import lru_cache
from typing import Protocol

from .registry import RegistryView


class Matcher(Protocol):
    def substitute(self, text: str, view: RegistryView) -> str: ...


@lru_cache(maxsize=8192)
def _pattern_for(original: str) -> re.Pattern:
    return re.compile(rf"(?<!\w){re.escape(original)}(?!\w)", re.IGNORECASE)


class SequentialMatcher:
    """One compiled pattern per original, applied in specificity order."""

    name = "sequential"

    def substitute(self, text: str, view: RegistryView) -> str:
        result = text
        for original in view.originals:
            alias = view.aliases.get(original)
            if alias is None:
                continue
            result = _pattern_for(original).sub(lambda _m, a=alias: a, result)
        return result


class CombinedMatcher:
    """Single alternation regex, rebuilt only when the registry changes."""

    name = "combined"

    __slots__ = ("_compiled",)

    def __init__(self) -> None:
        self._compiled: tuple[int, re.Pattern | None, tuple[str, ...]] | None = None

    def _pattern(self, view: RegistryView) -> tuple[re.Pattern | None, tuple[str, ...]]:
        compiled = self._compiled
        if compiled is not None and compiled[0] == view.version:
            return compiled[1], compiled[2]

        originals = tuple(o for o in view.originals if o in view.aliases)
        pattern = None
        if originals:
            # One group per original; m.lastindex tells which one matched
            body = "|".join(f"({re.escape(o)})" for o in originals)
            pattern = re.compile(rf"(?<!\w)(?:{body})(?!\w)", re.IGNORECASE)
        self._compiled = (view.version, pattern, originals)
        return pattern, originals

    def substitute(self, text: str, view: RegistryView) -> str:
        pattern, originals = self._pattern(view)
        if pattern is None:
            return text
        return pattern.sub(lambda m: view.aliases[originals[m.lastindex - 1]], text)


_MATCHERS = {
    SequentialMatcher.name: SequentialMatcher,
    CombinedMatcher.name: CombinedMatcher,
}


def get_matcher(name: str) -> Matcher:
    """Build a matcher by config name (``"sequential"`` or ``"combined"``)."""
    try:
        return _MATCHERS[name]()
    except KeyError:
        raise ValueError(f"unknown matcher {name!r}; expected one of {sorted(_MATCHERS)}") from None
