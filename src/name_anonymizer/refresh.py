"""RefreshController — keeps the registry in step with the host system.

A refresh loads the persisted table, registers every name the enabled
sources currently report, and saves the result.  Display reads trigger a
refresh once the TTL has run out::

    controller = RefreshController(registry, store, sources, settings)
    controller.get_display_snapshot()    # may block on a full refresh

Refreshing is idempotent: known names keep the alias they already have.
"""

from __future__ import annotations
import enum
import logging
import threading
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .registry import AliasRegistry
from .store import AliasStore

if TYPE_CHECKING:
    from .config import AnonymizationSettings

logger = logging.getLogger(__name__)

# Categories known to the host system; "item" names are folder paths
DEFAULT_CATEGORIES = ("label", "item", "view", "node", "computer", "user")
HIERARCHICAL_CATEGORIES = frozenset({"item"})


@dataclass(frozen=True)
class EntitySource:
    """One enumeration of sensitive names for a category."""
    category: str
    list_current: Callable[[], Iterable[str]]
    hierarchical: bool = False


def static_sources(
    entities: Mapping[str, Iterable[str]],
    *,
    hierarchical: Iterable[str] = HIERARCHICAL_CATEGORIES,
) -> list[EntitySource]:
    """Build sources from a fixed ``{category: [names]}`` mapping."""
    hierarchical = frozenset(hierarchical)
    return [
        EntitySource(
            category=category,
            list_current=lambda names=tuple(names): names,
            hierarchical=category in hierarchical,
        )
        for category, names in entities.items()
    ]


class RefreshState(enum.Enum):
    FRESH = "fresh"
    STALE = "stale"


class RefreshController:
    """Fresh/Stale state machine around registry refreshes."""

    def __init__(
        self,
        registry: AliasRegistry,
        store: AliasStore,
        sources: Sequence[EntitySource],
        settings: AnonymizationSettings,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.registry = registry
        self.store = store
        self.sources = list(sources)
        self.settings = settings
        self._clock = clock
        self._lock = threading.RLock()
        self._last_refresh: float | None = None
        # Set when a save failed: the blob on disk is older than memory
        self._unsaved = False
        self.refresh_count = 0

    @property
    def state(self) -> RefreshState:
        last = self._last_refresh
        if last is None or self._clock() - last >= self.settings.refresh_interval:
            return RefreshState.STALE
        return RefreshState.FRESH

    @property
    def unsaved(self) -> bool:
        return self._unsaved

    def refresh(self) -> int:
        """Run a full refresh.  Returns the number of names registered.

        Raises :class:`StoreCorruptedError` if the persisted table cannot be
        read; enumeration errors propagate too.  Either way the controller
        stays stale and the next display read retries.
        """
        with self._lock:
            logger.debug("Refreshing anonymized names")
            started = time.perf_counter()

            table = self.store.load()
            if table and not self._unsaved:
                self.registry.merge(table)

            settings = self.settings
            count = 0
            for source in self.sources:
                if not settings.anonymize_category(source.category):
                    continue
                for name in source.list_current():
                    self._register(source.category, name, source.hierarchical)
                    count += 1

            self._persist()
            self._last_refresh = self._clock()
            self.refresh_count += 1

        logger.info(
            "Refreshed %d names (%d known) in %.3fs",
            count, len(self.registry), time.perf_counter() - started,
        )
        return count

    def register(self, category: str, name: str, *, hierarchical: bool = False, persist: bool = True) -> str:
        """Register one name between refreshes and return its alias.

        Held under the refresh lock so a concurrent refresh can never seed
        over a name issued in the middle of it.
        """
        with self._lock:
            known = len(self.registry)
            alias = self._register(category, name, hierarchical)
            if persist and len(self.registry) != known:
                self._persist()
            return alias

    def _register(self, category: str, name: str, hierarchical: bool) -> str:
        excluded = self.settings.excluded_words
        if hierarchical:
            return self.registry.register_path(name, category, excluded)
        return self.registry.register_name(name, category, "", excluded)

    def persist(self) -> bool:
        """Save the registry now, outside the refresh cycle."""
        with self._lock:
            return self._persist()

    def _persist(self) -> bool:
        saved = self.store.save(self.registry.export())
        self._unsaved = not saved
        return saved

    def ensure_fresh(self) -> bool:
        """Refresh if stale.  Returns True when a refresh ran."""
        if self.state is RefreshState.FRESH:
            return False
        with self._lock:
            # Another caller may have refreshed while we waited
            if self.state is RefreshState.FRESH:
                return False
            self.refresh()
            return True

    def get_display_snapshot(self) -> Mapping[str, str]:
        """Original → alias table; blocks on a full refresh when stale."""
        self.ensure_fresh()
        return self.registry.snapshot()
