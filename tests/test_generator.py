"""Tests for the pseudonym generator."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import threading

import pytest

from name_anonymizer import PseudonymGenerator


def test_token_is_two_words():
    token = PseudonymGenerator(seed=1).next()
    parts = token.split("_")
    assert len(parts) == 2
    assert all(parts)
    assert token == token.lower()
    assert " " not in token


def test_seeded_generators_repeat():
    a = PseudonymGenerator(seed=42)
    b = PseudonymGenerator(seed=42)
    assert [a.next() for _ in range(5)] == [b.next() for _ in range(5)]


def test_word_count_configurable():
    assert len(PseudonymGenerator(seed=3, words=3).next().split("_")) == 3


def test_rejects_zero_words():
    with pytest.raises(ValueError):
        PseudonymGenerator(words=0)


def test_concurrent_calls():
    gen = PseudonymGenerator(seed=5)
    tokens: list[str] = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            t = gen.next()
            with lock:
                tokens.append(t)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(tokens) == 400
    assert all(len(t.split("_")) == 2 for t in tokens)
