"""AliasRegistry — original ↔ pseudonym table with a specificity index.

Every registered original is stored under all of its textual variants
(raw, HTML-escaped, alternate-separator forms) so they all redact to the
same alias.  Originals are also kept in *specificity order*: longest
first, ties broken lexicographically.  That order is the substitution
order, so ``Job1`` can never eat into ``Job10``.

    registry = AliasRegistry(PseudonymGenerator())
    registry.register_name("Job1", "item")             # "item_fruit_answer"
    registry.register_path("Folder1/Job1", "item")      # "item_x_y/item_z_w"

Registrations are published atomically: a reader calling :meth:`view`
sees either none or all of an entity's variants.
"""

from __future__ import annotations
import bisect
import html
import logging
import threading
from collections.abc import Collection, Mapping
from types import MappingProxyType
from typing import Any, NamedTuple

from .generator import PseudonymGenerator

logger = logging.getLogger(__name__)

# Full display names use this breadcrumb separator instead of "/"
DEFAULT_SEPARATORS: tuple[str, ...] = (" » ",)
DEFAULT_PATH_SEPARATOR = "/"

_MAX_ALIAS_ATTEMPTS = 10


def specificity_key(original: str) -> tuple[int, str]:
    """Sort key: longest first, then lexicographic."""
    return (-len(original), original)


class RegistryView(NamedTuple):
    """Immutable, mutually consistent snapshot used for one redaction pass."""
    originals: tuple[str, ...]          # in specificity order
    aliases: Mapping[str, str]          # variant → alias
    version: int


class AliasRegistry:
    """Thread-safe alias table.  Entries are never removed, only replaced
    wholesale by :meth:`replace_all`."""

    def __init__(
        self,
        generator: PseudonymGenerator | None = None,
        *,
        separators: Collection[str] = DEFAULT_SEPARATORS,
        path_separator: str = DEFAULT_PATH_SEPARATOR,
        unique_aliases: bool = True,
    ) -> None:
        if not path_separator:
            raise ValueError("path_separator must not be empty")
        self._generator = generator or PseudonymGenerator()
        self._separators = tuple(separators)
        self._path_separator = path_separator
        self._unique_aliases = unique_aliases

        self._lock = threading.RLock()
        self._alias_of: dict[str, str] = {}      # variant → alias
        self._display_of: dict[str, str] = {}    # canonical original → alias
        self._order: list[tuple[int, str]] = []  # specificity_key(original), sorted
        self._issued: set[str] = set()
        self._version = 0
        self._view: RegistryView | None = None

    @property
    def path_separator(self) -> str:
        return self._path_separator

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_name(
        self,
        original: str,
        category: str,
        path_prefix: str = "",
        exclusions: Collection[str] = (),
    ) -> str:
        """Return the alias for *original*, creating it on first sight.

        Excluded words (case-insensitive) and the empty string come back
        unchanged and are not registered.
        """
        if not original or _is_excluded(original, exclusions):
            return original

        with self._lock:
            existing = self._alias_of.get(original)
            if existing is not None:
                return existing

            alias = self._new_alias(original, f"{path_prefix}{category}_")
            # Build the whole variant set first, then publish it in one step
            variants = dict.fromkeys(self.variants_of(original), alias)

            self._alias_of.update(variants)
            self._display_of[original] = alias
            bisect.insort(self._order, specificity_key(original))
            self._issued.add(alias)
            self._touch()

        logger.debug("Registered %s alias %s (%d variants)", category, alias, len(variants))
        return alias

    def register_path(
        self,
        original_path: str,
        category: str,
        exclusions: Collection[str] = (),
    ) -> str:
        """Anonymize a hierarchical path segment by segment.

        Every prefix of the path is registered on its own, so
        ``Folder1/Job1`` becomes ``<alias of Folder1>/<alias of Folder1/Job1>``
        and a later ``Folder1`` registration reuses the same alias.
        """
        sep = self._path_separator
        segments = original_path.split(sep)
        while segments and segments[-1] == "":
            segments.pop()

        old_path = ""
        new_path = ""
        last = len(segments) - 1
        for i, segment in enumerate(segments):
            old_path += segment
            new_path = self.register_name(old_path, category, new_path, exclusions)
            if i != last:
                old_path += sep
                new_path += sep
        if original_path.endswith(sep):
            new_path += sep
        return new_path

    def variants_of(self, original: str) -> set[str]:
        """All textual forms that must map to the same alias as *original*."""
        found = {original, html.escape(original)}
        for separator in self._separators:
            replaced = original.replace(self._path_separator, separator)
            found.add(replaced)
            found.add(html.escape(replaced))
        return found

    def _new_alias(self, original: str, prefix: str) -> str:
        alias = prefix + self._generator.next()
        if not self._unique_aliases:
            return alias
        attempts = 1
        while alias in self._issued and attempts < _MAX_ALIAS_ATTEMPTS:
            alias = prefix + self._generator.next()
            attempts += 1
        if alias in self._issued:
            logger.warning(
                "Pseudonym collision for %r after %d attempts; reusing %s",
                original, attempts, alias,
            )
        return alias

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def lookup(self, variant: str) -> str | None:
        with self._lock:
            return self._alias_of.get(variant)

    def __contains__(self, original: object) -> bool:
        with self._lock:
            return original in self._display_of

    def __len__(self) -> int:
        with self._lock:
            return len(self._display_of)

    def view(self) -> RegistryView:
        """Consistent snapshot of the specificity order and variant table.

        Cached until the next mutation, so repeated redactions against an
        unchanged registry do not copy anything.
        """
        with self._lock:
            if self._view is None:
                self._view = RegistryView(
                    originals=tuple(original for _, original in self._order),
                    aliases=MappingProxyType(dict(self._alias_of)),
                    version=self._version,
                )
            return self._view

    def snapshot(self) -> Mapping[str, str]:
        """Read-only original → alias table, sorted by original."""
        with self._lock:
            return MappingProxyType(dict(sorted(self._display_of.items())))

    def aliases(self) -> Mapping[str, str]:
        """Read-only variant → alias table."""
        return self.view().aliases

    # ------------------------------------------------------------------
    # Persistence round-trip
    # ------------------------------------------------------------------

    def export(self) -> dict[str, Any]:
        """Copy of the full table, in the shape :meth:`replace_all` accepts."""
        with self._lock:
            return {
                "aliases": dict(self._alias_of),
                "display": dict(self._display_of),
            }

    def replace_all(self, table: Mapping[str, Any]) -> None:
        """Replace the whole registry with an exported/loaded table."""
        aliases = dict(table.get("aliases", {}))
        display = dict(table.get("display", {}))
        order = sorted(specificity_key(original) for original in display if original)

        with self._lock:
            self._alias_of = aliases
            self._display_of = display
            self._order = order
            self._issued = set(aliases.values())
            self._touch()

    def merge(self, table: Mapping[str, Any]) -> None:
        """Seed from a loaded table without dropping names it lacks.

        Stored entries win where both sides know a key; originals that
        exist only in memory (issued since the table was written) stay.
        """
        aliases = dict(table.get("aliases", {}))
        display = dict(table.get("display", {}))

        with self._lock:
            merged_aliases = {**self._alias_of, **aliases}
            merged_display = {**self._display_of, **display}
            self._alias_of = merged_aliases
            self._display_of = merged_display
            self._order = sorted(specificity_key(o) for o in merged_display if o)
            self._issued = set(merged_aliases.values())
            self._touch()

    def _touch(self) -> None:
        self._version += 1
        self._view = None


def _is_excluded(original: str, exclusions: Collection[str]) -> bool:
    if not exclusions:
        return False
    lowered = original.lower()
    return lowered in exclusions or any(lowered == word.lower() for word in exclusions)
