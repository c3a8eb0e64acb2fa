"""Pseudonym generator — short, pronounceable ``word_word`` tokens.

    gen = PseudonymGenerator(seed=7)
    gen.next()      # "election_whose"

Uniqueness is NOT enforced here; the registry checks issued aliases.
"""

from __future__ import annotations
import threading

from faker import Faker


class PseudonymGenerator:
    """Random readable tokens built from dictionary words."""

    __slots__ = ("_faker", "_words", "_lock")

    def __init__(self, seed: int | None = None, *, words: int = 2, locale: str = "en_US") -> None:
        if words < 1:
            raise ValueError("words must be >= 1")
        self._faker = Faker(locale)
        if seed is not None:
            self._faker.seed_instance(seed)
        self._words = words
        # Faker instances share one RNG and are not safe to drive concurrently
        self._lock = threading.Lock()

    def next(self) -> str:
        """Return a new token, e.g. ``"marriage_apply"``."""
        with self._lock:
            words = self._faker.words(nb=self._words, unique=True)
        return "_".join(w.lower() for w in words)
