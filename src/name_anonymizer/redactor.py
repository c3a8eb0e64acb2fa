"""TextRedactor — replaces every registered original in free-form text.

Usage:
    redactor = TextRedactor(registry)
    redactor.redact("Job10 ran; Job1 too")    # "item_c_d ran; item_a_b too"

Each call works on one consistent :class:`RegistryView`, so a concurrent
registration can be missed for that call but never half-applied.
Redaction never raises: at worst it under-redacts names that are not
registered yet.
"""

from __future__ import annotations
from collections.abc import Iterable, Iterator

from .matching import Matcher, SequentialMatcher
from .registry import AliasRegistry


class TextRedactor:
    """Applies the registry to text, longest original first."""

    def __init__(self, registry: AliasRegistry, matcher: Matcher | None = None) -> None:
        self.registry = registry
        self.matcher = matcher or SequentialMatcher()

    def redact(self, text: str) -> str:
        """Return *text* with every registered original replaced by its alias."""
        view = self.registry.view()
        if not text or not view.originals:
            return text
        return self.matcher.substitute(text, view)

    def redact_lines(self, lines: Iterable[str]) -> Iterator[str]:
        """Redact a stream of lines (e.g. a log file) against one view."""
        view = self.registry.view()
        for line in lines:
            if not line or not view.originals:
                yield line
            else:
                yield self.matcher.substitute(line, view)
