"""name-anonymizer — stable pseudonyms for sensitive names, and fast text redaction."""

from .anonymizer import Anonymizer
from .config import AnonymizationSettings, create_anonymizer, load_config, load_from_yaml
from .errors import AnonymizerError, ConfigError, StoreCorruptedError
from .generator import PseudonymGenerator
from .log_filter import RedactionFilter
from .matching import CombinedMatcher, SequentialMatcher
from .redactor import TextRedactor
from .refresh import EntitySource, RefreshController, RefreshState, static_sources
from .registry import AliasRegistry
from .store import AliasStore, JsonFileStore, MemoryStore, SqliteStore

__all__ = [
    "Anonymizer", "create_anonymizer",
    "AnonymizationSettings", "load_config", "load_from_yaml",
    "AnonymizerError", "ConfigError", "StoreCorruptedError",
    "PseudonymGenerator", "AliasRegistry",
    "TextRedactor", "SequentialMatcher", "CombinedMatcher",
    "EntitySource", "RefreshController", "RefreshState", "static_sources",
    "AliasStore", "MemoryStore", "JsonFileStore", "SqliteStore",
    "RedactionFilter",
]
__version__ = "0.1.0"
