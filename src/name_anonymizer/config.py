"""YAML/dict config loader for name-anonymizer.

Supports loading from a YAML file or a plain dict (for embedding in a
larger host config).

Example YAML:

    name_anonymizer:
      enabled: true
      categories:              # missing categories are anonymized
        label: true
        item: true
        user: false
      excluded_words:          # case-insensitive, never anonymized
        - admin
        - master
      separators:
        - " » "
      path_separator: /
      refresh_interval: 600    # seconds
      matcher: sequential      # or "combined"
      unique_aliases: true
      store:
        backend: json          # "memory", "json" or "sqlite"
        path: ~/.name-anonymizer/anonymized-names.json
"""

from __future__ import annotations
import os
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .anonymizer import Anonymizer
from .errors import ConfigError
from .generator import PseudonymGenerator
from .matching import get_matcher
from .redactor import TextRedactor
from .refresh import EntitySource, RefreshController
from .registry import DEFAULT_PATH_SEPARATOR, DEFAULT_SEPARATORS, AliasRegistry
from .store import AliasStore, JsonFileStore, MemoryStore, SqliteStore

DEFAULT_REFRESH_INTERVAL = 10 * 60
DEFAULT_STORE_PATH = os.environ.get(
    "NAME_ANONYMIZER_STORE",
    str(Path.home() / ".name-anonymizer" / "anonymized-names.json"),
)


@dataclass(frozen=True)
class AnonymizationSettings:
    """Read-only policy snapshot."""
    categories: Mapping[str, bool] = field(default_factory=dict)
    excluded_words: frozenset[str] = frozenset()     # lower-cased
    separators: tuple[str, ...] = DEFAULT_SEPARATORS
    path_separator: str = DEFAULT_PATH_SEPARATOR
    refresh_interval: float = DEFAULT_REFRESH_INTERVAL

    def anonymize_category(self, category: str) -> bool:
        return self.categories.get(category, True)


class _NoopAnonymizer:
    """Pass-through anonymizer when anonymization is disabled."""
    def start(self) -> "_NoopAnonymizer":
        return self
    def redact(self, text: str) -> str:
        return text
    def redact_lines(self, lines):
        return iter(lines)
    def get_display_snapshot(self) -> dict[str, str]:
        return {}
    def get_full_alias_table(self) -> dict[str, str]:
        return {}
    def force_refresh(self) -> int:
        return 0
    def register(self, category: str, name: str, **_: Any) -> str:
        return name
    @property
    def stats(self) -> dict:
        return {"enabled": False, "names": 0, "variants": 0}


def load_config(data: Mapping[str, Any] | None) -> dict[str, Any]:
    """Normalize a config dict (from YAML or inline)."""
    data = dict(data or {})
    # Support nested under "name_anonymizer" key or flat
    if "name_anonymizer" in data:
        data = dict(data["name_anonymizer"] or {})

    store = data.get("store") or {}
    separators = data.get("separators", list(DEFAULT_SEPARATORS))
    if isinstance(separators, str):
        separators = [separators]

    try:
        refresh_interval = float(data.get("refresh_interval", DEFAULT_REFRESH_INTERVAL))
    except (TypeError, ValueError):
        raise ConfigError(f"refresh_interval must be a number, got {data.get('refresh_interval')!r}") from None
    if refresh_interval < 0:
        raise ConfigError("refresh_interval must be >= 0")

    backend = store.get("backend", "json")
    if backend not in ("memory", "json", "sqlite"):
        raise ConfigError(f"unknown store backend {backend!r}")

    matcher = data.get("matcher", "sequential")
    if matcher not in ("sequential", "combined"):
        raise ConfigError(f"unknown matcher {matcher!r}")

    path_separator = data.get("path_separator", DEFAULT_PATH_SEPARATOR)
    if not path_separator:
        raise ConfigError("path_separator must not be empty")

    return {
        "enabled": bool(data.get("enabled", True)),
        "categories": {str(k): bool(v) for k, v in (data.get("categories") or {}).items()},
        "excluded_words": [str(w) for w in data.get("excluded_words") or []],
        "separators": [str(s) for s in separators],
        "path_separator": path_separator,
        "refresh_interval": refresh_interval,
        "matcher": matcher,
        "unique_aliases": bool(data.get("unique_aliases", True)),
        "seed": data.get("seed"),
        "store_backend": backend,
        "store_path": store.get("path", DEFAULT_STORE_PATH),
    }


def load_from_yaml(path: str | Path) -> dict[str, Any]:
    """Load config from a YAML file."""
    with open(path, encoding="utf-8") as f:
        return load_config(yaml.safe_load(f))


def settings_from_config(cfg: Mapping[str, Any]) -> AnonymizationSettings:
    return AnonymizationSettings(
        categories=dict(cfg["categories"]),
        excluded_words=frozenset(w.lower() for w in cfg["excluded_words"]),
        separators=tuple(cfg["separators"]),
        path_separator=cfg["path_separator"],
        refresh_interval=cfg["refresh_interval"],
    )


def create_store(cfg: Mapping[str, Any]) -> AliasStore:
    backend = cfg["store_backend"]
    if backend == "memory":
        return MemoryStore()
    if backend == "sqlite":
        return SqliteStore(cfg["store_path"])
    return JsonFileStore(cfg["store_path"])


def create_anonymizer(
    config: Mapping[str, Any] | None = None,
    sources: Sequence[EntitySource] = (),
    *,
    store: AliasStore | None = None,
    clock: Callable[[], float] | None = None,
) -> Anonymizer | _NoopAnonymizer:
    """Create a fully wired anonymizer from a config dict.

    Does not touch storage; call ``.start()`` to seed and refresh.
    """
    cfg = config if config is not None and "store_backend" in config else load_config(config)

    if not cfg["enabled"]:
        return _NoopAnonymizer()

    settings = settings_from_config(cfg)
    registry = AliasRegistry(
        PseudonymGenerator(seed=cfg["seed"]),
        separators=settings.separators,
        path_separator=settings.path_separator,
        unique_aliases=cfg["unique_aliases"],
    )
    controller_kwargs = {"clock": clock} if clock is not None else {}
    controller = RefreshController(
        registry,
        store if store is not None else create_store(cfg),
        sources,
        settings,
        **controller_kwargs,
    )
    return Anonymizer(
        registry=registry,
        redactor=TextRedactor(registry, get_matcher(cfg["matcher"])),
        controller=controller,
    )
