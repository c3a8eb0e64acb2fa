"""Tests for the alias registry — registration, variants, paths, persistence shape."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import logging
import threading

from name_anonymizer import AliasRegistry, PseudonymGenerator
from helpers import FakeGenerator


# ── register_name ────────────────────────────────────────────────────

def test_register_name_alias_format():
    reg = AliasRegistry(FakeGenerator("a_b"))
    assert reg.register_name("Job1", "item") == "item_a_b"
    assert reg.lookup("Job1") == "item_a_b"
    assert "Job1" in reg


def test_register_name_idempotent():
    reg = AliasRegistry(FakeGenerator("a_b", "c_d"))
    first = reg.register_name("Job1", "item")
    before = reg.view()
    second = reg.register_name("Job1", "item")
    after = reg.view()
    assert first == second == "item_a_b"
    assert after.originals == before.originals
    assert dict(after.aliases) == dict(before.aliases)
    assert len(reg) == 1


def test_exclusion_bypass():
    reg = AliasRegistry(FakeGenerator("a_b"))
    assert reg.register_name("Admin", "user", "", {"admin"}) == "Admin"
    assert "Admin" not in reg
    assert reg.view().originals == ()
    assert reg.lookup("Admin") is None


def test_exclusion_mixed_case_entries():
    reg = AliasRegistry(FakeGenerator("a_b"))
    assert reg.register_name("admin", "user", "", ["ADMIN"]) == "admin"
    assert len(reg) == 0


def test_empty_name_not_registered():
    reg = AliasRegistry(FakeGenerator("a_b"))
    assert reg.register_name("", "user") == ""
    assert len(reg) == 0


# ── Variants ─────────────────────────────────────────────────────────

def test_variants_share_alias():
    reg = AliasRegistry(FakeGenerator("a_b"))
    alias = reg.register_name("My Job", "item")
    for variant in reg.variants_of("My Job"):
        assert reg.lookup(variant) == alias


def test_escaped_and_separator_variants():
    reg = AliasRegistry(FakeGenerator("a_b"))
    alias = reg.register_name("Tom & Jerry/Job<1>", "item")
    assert reg.lookup("Tom &amp; Jerry/Job&lt;1&gt;") == alias
    assert reg.lookup("Tom & Jerry » Job<1>") == alias
    assert reg.lookup("Tom &amp; Jerry » Job&lt;1&gt;") == alias
    # Variants are aliases of one entity, not separate originals
    assert reg.view().originals == ("Tom & Jerry/Job<1>",)
    assert dict(reg.snapshot()) == {"Tom & Jerry/Job<1>": alias}


def test_custom_separators():
    reg = AliasRegistry(FakeGenerator("a_b"), separators=[" > ", "::"])
    alias = reg.register_name("a/b", "item")
    assert reg.lookup("a > b") == alias
    assert reg.lookup("a::b") == alias
    assert reg.lookup("a » b") is None


# ── register_path ────────────────────────────────────────────────────

def test_path_hierarchy():
    reg = AliasRegistry(FakeGenerator("a_b", "c_d"))
    assert reg.register_path("Folder1/Job1", "item") == "item_a_b/item_c_d"
    assert reg.register_name("Folder1", "item") == "item_a_b"
    assert reg.lookup("Folder1/Job1") == "item_a_b/item_c_d"


def test_path_reuses_ancestors():
    reg = AliasRegistry(FakeGenerator("a_b", "c_d", "e_f"))
    reg.register_name("Folder1", "item")
    assert reg.register_path("Folder1/Job1", "item") == "item_a_b/item_c_d"
    assert reg.register_path("Folder1/Job2", "item") == "item_a_b/item_e_f"


def test_path_trailing_separator():
    reg = AliasRegistry(FakeGenerator("a_b"))
    assert reg.register_path("Folder1/", "item") == "item_a_b/"
    assert "Folder1" in reg
    assert "Folder1/" not in reg


def test_path_excluded_segment():
    reg = AliasRegistry(FakeGenerator("a_b"))
    assert reg.register_path("shared/Job1", "item", {"shared"}) == "shared/item_a_b"
    assert "shared" not in reg


def test_path_with_custom_separator():
    reg = AliasRegistry(FakeGenerator("a_b", "c_d"), path_separator="\\")
    assert reg.register_path("dir\\file", "path") == "path_a_b\\path_c_d"


# ── Specificity order ────────────────────────────────────────────────

def test_specificity_order():
    reg = AliasRegistry(FakeGenerator())
    for name in ("Job1", "Job10", "Abc1", "x"):
        reg.register_name(name, "item")
    assert reg.view().originals == ("Job10", "Abc1", "Job1", "x")


# ── Alias uniqueness ─────────────────────────────────────────────────

def test_collision_regenerates():
    reg = AliasRegistry(FakeGenerator("a_b", "a_b", "c_d"))
    assert reg.register_name("Job1", "item") == "item_a_b"
    assert reg.register_name("Job2", "item") == "item_c_d"


def test_collision_allowed_when_uniqueness_disabled():
    reg = AliasRegistry(FakeGenerator("a_b", "a_b"), unique_aliases=False)
    assert reg.register_name("Job1", "item") == "item_a_b"
    assert reg.register_name("Job2", "item") == "item_a_b"


def test_collision_exhausted_is_non_fatal(caplog):
    reg = AliasRegistry(FakeGenerator(*["a_b"] * 20))
    reg.register_name("Job1", "item")
    with caplog.at_level(logging.WARNING, logger="name_anonymizer.registry"):
        assert reg.register_name("Job2", "item") == "item_a_b"
    assert "collision" in caplog.text


def test_same_word_different_category_is_not_a_collision():
    reg = AliasRegistry(FakeGenerator("a_b", "a_b"))
    assert reg.register_name("x", "user") == "user_a_b"
    assert reg.register_name("y", "node") == "node_a_b"


# ── export / replace_all ─────────────────────────────────────────────

def test_export_replace_all_roundtrip():
    reg = AliasRegistry(FakeGenerator())
    reg.register_path("Folder1/Job1", "item")
    reg.register_name("alice", "user")

    fresh = AliasRegistry(FakeGenerator("z_z"))
    fresh.replace_all(reg.export())
    assert dict(fresh.aliases()) == dict(reg.aliases())
    assert dict(fresh.snapshot()) == dict(reg.snapshot())
    assert fresh.view().originals == reg.view().originals
    # Loaded names are known; no regeneration
    assert fresh.register_name("alice", "user") == reg.lookup("alice")


def test_replace_all_clears_previous_contents():
    reg = AliasRegistry(FakeGenerator())
    reg.register_name("old", "user")
    reg.replace_all({"aliases": {"new": "user_n_n"}, "display": {"new": "user_n_n"}})
    assert reg.lookup("old") is None
    assert reg.view().originals == ("new",)


def test_merge_keeps_names_missing_from_table():
    reg = AliasRegistry(FakeGenerator("a_b"))
    reg.register_name("bob", "user")
    reg.merge({"aliases": {"carol": "user_c_c"}, "display": {"carol": "user_c_c"}})
    assert reg.lookup("bob") == "user_a_b"
    assert reg.lookup("carol") == "user_c_c"
    assert reg.view().originals == ("carol", "bob")


def test_merge_stored_entries_win():
    reg = AliasRegistry(FakeGenerator("a_b"))
    reg.register_name("bob", "user")
    reg.merge({"aliases": {"bob": "user_disk"}, "display": {"bob": "user_disk"}})
    assert reg.lookup("bob") == "user_disk"
    assert dict(reg.snapshot()) == {"bob": "user_disk"}


def test_export_is_a_copy():
    reg = AliasRegistry(FakeGenerator())
    reg.register_name("alice", "user")
    exported = reg.export()
    exported["aliases"]["bob"] = "user_x"
    assert reg.lookup("bob") is None


def test_snapshot_is_read_only():
    reg = AliasRegistry(FakeGenerator())
    reg.register_name("alice", "user")
    snap = reg.snapshot()
    try:
        snap["bob"] = "x"  # type: ignore[index]
    except TypeError:
        pass
    else:
        raise AssertionError("snapshot should be read-only")


# ── Concurrency ──────────────────────────────────────────────────────

def test_concurrent_registration_of_same_name():
    reg = AliasRegistry(PseudonymGenerator(seed=1))
    results: list[str] = []
    lock = threading.Lock()
    barrier = threading.Barrier(8)

    def worker():
        barrier.wait()
        alias = reg.register_name("shared-host", "node")
        with lock:
            results.append(alias)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(set(results)) == 1
    assert len(reg) == 1


def test_readers_never_see_partial_variant_sets():
    reg = AliasRegistry(FakeGenerator())
    stop = threading.Event()
    problems: list[str] = []

    def reader():
        while not stop.is_set():
            view = reg.view()
            for original in view.originals:
                alias = view.aliases.get(original)
                for variant in reg.variants_of(original):
                    if view.aliases.get(variant) != alias:
                        problems.append(original)

    t = threading.Thread(target=reader)
    t.start()
    for i in range(300):
        reg.register_path(f"Folder{i % 7}/Job & {i}", "item")
    stop.set()
    t.join()
    assert problems == []
