from __future__ import annotations

import asyncio
import sys
from pathlib import Path

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from drive_fakes import REGION_TREE, FakeClock, FakeDriveLister
from participant_drive.services.folder_search.cache import FolderCache
from participant_drive.services.folder_search.models import SearchOptions
from participant_drive.services.folder_search.traversal import FolderTraversal


def _traversal(lister: FakeDriveLister) -> tuple[FolderTraversal, FolderCache]:
    cache = FolderCache(clock=FakeClock())
    return FolderTraversal(lister, cache), cache


def test_breadth_first_lists_every_level_one_folder_before_level_two() -> None:
    lister = FakeDriveLister(REGION_TREE)
    traversal, _ = _traversal(lister)

    outcome = asyncio.run(
        traversal.search("root", "Eko Prasetyo", SearchOptions(max_depth=3, strategy="BFS"))
    )

    assert lister.listed_parents == ["root", "north", "south", "n1", "n2", "n3", "s1", "s2", "s3"]
    assert outcome.matches[0].id == "s2"
    assert outcome.matches[0].similarity == 1.0


def test_depth_first_lists_first_branch_before_second() -> None:
    lister = FakeDriveLister(REGION_TREE)
    traversal, _ = _traversal(lister)

    outcome = asyncio.run(
        traversal.search("root", "Eko Prasetyo", SearchOptions(max_depth=3, strategy="DFS"))
    )

    assert lister.listed_parents == ["root", "north", "n1", "n2", "n3", "south", "s1", "s2", "s3"]
    assert outcome.matches[0].id == "s2"


def test_matches_carry_depth_and_path() -> None:
    traversal, _ = _traversal(FakeDriveLister(REGION_TREE))

    outcome = asyncio.run(traversal.search("root", "Budi Santoso", SearchOptions()))

    best = outcome.matches[0]
    assert best.record.depth == 2
    assert best.record.path_names == ("Region North", "Budi Santoso")
    assert best.to_dict()["level"] == 2


def test_max_depth_limits_listing() -> None:
    lister = FakeDriveLister(REGION_TREE)
    traversal, _ = _traversal(lister)

    outcome = asyncio.run(traversal.search("root", "Budi Santoso", SearchOptions(max_depth=1)))

    assert lister.listed_parents == ["root"]
    assert outcome.matches == []


def test_equal_scores_keep_discovery_order() -> None:
    tree = {
        "root": [("a", "Santoso Wijaya"), ("b", "Budi Santoso"), ("c", "Santoso")],
    }
    traversal, _ = _traversal(FakeDriveLister(tree))

    outcome = asyncio.run(traversal.search("root", "Santoso", SearchOptions(max_depth=1)))

    assert [match.id for match in outcome.matches] == ["c", "a", "b"]
    assert [match.similarity for match in outcome.matches] == [1.0, 0.8, 0.8]


def test_exact_only_search_ignores_partial_matches() -> None:
    tree = {"root": [("a", "Santoso Wijaya"), ("b", "Santoso")]}
    traversal, _ = _traversal(FakeDriveLister(tree))

    outcome = asyncio.run(
        traversal.search("root", "Santoso", SearchOptions(max_depth=1, fuzzy_match=False))
    )

    assert [match.id for match in outcome.matches] == ["b"]


def test_cycles_are_listed_once() -> None:
    tree = {"root": [("a", "Loop A")], "a": [("root", "Back To Root")]}
    for strategy in ("BFS", "DFS"):
        lister = FakeDriveLister(tree)
        traversal, _ = _traversal(lister)

        asyncio.run(traversal.search("root", "Nobody", SearchOptions(max_depth=10, strategy=strategy)))

        assert lister.listed_parents == ["root", "a"]


def test_failed_listing_is_treated_as_empty_and_not_cached() -> None:
    lister = FakeDriveLister(REGION_TREE, failing={"north"})
    traversal, cache = _traversal(lister)

    outcome = asyncio.run(traversal.search("root", "Dewi Anggraini", SearchOptions()))

    assert outcome.matches[0].id == "s1"
    assert "north" in outcome.failures
    assert outcome.root_error is None
    assert cache.get_children("north") is None
    assert cache.get_children("south") is not None


def test_root_failure_is_reported() -> None:
    traversal, _ = _traversal(FakeDriveLister(REGION_TREE, failing={"root"}))

    outcome = asyncio.run(traversal.search("root", "Dewi Anggraini", SearchOptions()))

    assert outcome.matches == []
    assert outcome.root_error == "listing root failed"


def test_every_page_is_fetched_before_caching() -> None:
    lister = FakeDriveLister(REGION_TREE, page_size=2)
    traversal, cache = _traversal(lister)

    outcome = asyncio.run(traversal.search("root", "Citra Lestari", SearchOptions()))

    assert ("north", "2") in lister.calls
    assert outcome.matches[0].id == "n3"
    north = cache.get_children("north")
    assert north is not None
    assert [record.id for record in north] == ["n1", "n2", "n3"]


def test_failing_later_page_caches_nothing_for_that_parent() -> None:
    lister = FakeDriveLister(REGION_TREE, page_size=2, failing_tokens={"2"})
    traversal, cache = _traversal(lister)

    outcome = asyncio.run(traversal.search("root", "Citra Lestari", SearchOptions()))

    assert outcome.matches == []
    assert cache.get_children("north") is None
    assert cache.get_children("root") is not None


def test_cached_listings_are_reused_without_remote_calls() -> None:
    lister = FakeDriveLister(REGION_TREE)
    traversal, _ = _traversal(lister)

    first = asyncio.run(traversal.search("root", "Ahmad Fauzi", SearchOptions()))
    calls_after_first = len(lister.calls)
    second = asyncio.run(traversal.search("root", "Fajar Nugroho", SearchOptions()))

    assert first.remote_calls == 9
    assert len(lister.calls) == calls_after_first
    assert second.remote_calls == 0
    assert second.cache_hits == 9
    assert second.matches[0].id == "s3"


def test_disabled_cache_is_neither_read_nor_written() -> None:
    lister = FakeDriveLister(REGION_TREE)
    traversal, cache = _traversal(lister)

    asyncio.run(traversal.search("root", "Ahmad Fauzi", SearchOptions(cache_enabled=False)))

    stats = cache.stats()
    assert stats.children_count == 0
    assert stats.resolved_count == 0


def test_first_exact_match_is_cached_under_the_searched_name() -> None:
    tree = {"root": [("e1", "Eko Prasetyo"), ("e2", "Dr. Eko Prasetyo"), ("e3", "Eko")]}
    traversal, cache = _traversal(FakeDriveLister(tree))

    outcome = asyncio.run(traversal.search("root", "eko prasetyo", SearchOptions(max_depth=1)))

    assert [match.id for match in outcome.matches] == ["e1", "e2", "e3"]
    cached = cache.get_resolved("Eko Prasetyo")
    assert cached is not None and cached.id == "e1"
    assert cache.stats().resolved_count == 1


def test_load_hierarchy_caches_every_listing() -> None:
    lister = FakeDriveLister(REGION_TREE)
    traversal, cache = _traversal(lister)

    load = asyncio.run(traversal.load_hierarchy("root", 3))

    assert load.folders_loaded == 8
    assert load.remote_calls == 9
    assert load.failures == {}
    assert cache.stats().children_count == 9
