"""Logging filter that redacts records before any handler formats them.

    handler.addFilter(RedactionFilter(anonymizer))
"""

from __future__ import annotations
import logging


class RedactionFilter(logging.Filter):
    def __init__(self, anonymizer, name: str = "") -> None:
        super().__init__(name)
        self.anonymizer = anonymizer

    def filter(self, record: logging.LogRecord) -> bool:
        if not super().filter(record):
            return False
        # Merge args first so names passed as %s arguments are redacted too
        record.msg = self.anonymizer.redact(record.getMessage())
        record.args = None
        return True
