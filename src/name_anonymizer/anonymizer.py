"""Anonymizer — the public service object.

Built once at process start and handed to whoever needs to redact:

    anonymizer = create_anonymizer(config, sources).start()

    anonymizer.redact("Build of Folder1/Job1 failed on node-3")
    anonymizer.get_display_snapshot()    # refreshes first if the TTL ran out
    anonymizer.get_full_alias_table()    # every variant → alias
    anonymizer.force_refresh()
"""

from __future__ import annotations
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .redactor import TextRedactor
from .refresh import RefreshController
from .registry import AliasRegistry

if TYPE_CHECKING:
    from .config import AnonymizationSettings


@dataclass
class Anonymizer:
    """Wires registry, redactor and refresh controller together."""

    registry: AliasRegistry
    redactor: TextRedactor
    controller: RefreshController

    @property
    def settings(self) -> AnonymizationSettings:
        return self.controller.settings

    def start(self) -> "Anonymizer":
        """Seed from storage and run the first refresh.

        Raises StoreCorruptedError if the persisted table is unreadable;
        startup must not continue in that case.
        """
        self.controller.refresh()
        return self

    def redact(self, text: str) -> str:
        """Replace every known sensitive name in *text*."""
        return self.redactor.redact(text)

    def redact_lines(self, lines: Iterable[str]) -> Iterator[str]:
        return self.redactor.redact_lines(lines)

    def get_display_snapshot(self) -> Mapping[str, str]:
        """Original → alias.  Runs a full refresh (enumeration + save) when stale."""
        return self.controller.get_display_snapshot()

    def get_full_alias_table(self) -> Mapping[str, str]:
        return self.registry.aliases()

    def force_refresh(self) -> int:
        """Refresh now, ignoring the TTL."""
        return self.controller.refresh()

    def register(
        self,
        category: str,
        name: str,
        *,
        hierarchical: bool = False,
        persist: bool = True,
    ) -> str:
        """Register a single name between refreshes and return its alias.

        Names in a disabled category, and excluded words, come back unchanged.
        """
        if not self.settings.anonymize_category(category):
            return name
        return self.controller.register(category, name, hierarchical=hierarchical, persist=persist)

    @property
    def stats(self) -> dict:
        return {
            "enabled": True,
            "names": len(self.registry),
            "variants": len(self.registry.aliases()),
            "state": self.controller.state.value,
            "refreshes": self.controller.refresh_count,
            "unsaved": self.controller.unsaved,
        }
