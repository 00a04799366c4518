from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Optional

import httpx

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from drive_fakes import REGION_TREE, FakeClock, FakeDriveLister, StaticConfigProvider
from participant_drive.config import DriveConfig, Settings
from participant_drive.services.folder_search.cache import FolderCache
from participant_drive.services.folder_search.models import FolderPage
from participant_drive.services.folder_search.resolver import FolderResolver
from participant_drive.services.google_drive.client import GoogleDriveClient


def _resolver(
    lister: FakeDriveLister,
    config: Optional[DriveConfig] = None,
    search_timeout: Optional[float] = None,
) -> FolderResolver:
    return FolderResolver(
        lister=lister,
        cache=FolderCache(clock=FakeClock()),
        config_provider=StaticConfigProvider(config),
        search_timeout=search_timeout,
    )


def test_folder_id_hint_short_circuits_the_search() -> None:
    lister = FakeDriveLister(REGION_TREE)
    resolver = _resolver(lister)

    result = asyncio.run(resolver.resolve("Any Name", "  X  "))

    assert result.found is True
    assert result.method == "direct"
    assert result.folder_id == "X"
    assert lister.calls == []
    assert resolver.get_stats().resolved_count == 0


def test_blank_hint_falls_through_to_search() -> None:
    resolver = _resolver(FakeDriveLister(REGION_TREE))

    result = asyncio.run(resolver.resolve("Budi Santoso", "   "))

    assert result.method == "api_search"
    assert result.folder_id == "n2"


def test_exact_match_is_served_from_cache_on_repeat() -> None:
    lister = FakeDriveLister(REGION_TREE)
    resolver = _resolver(lister)

    first = asyncio.run(resolver.resolve("Budi Santoso"))
    calls = len(lister.calls)
    second = asyncio.run(resolver.resolve("BUDI SANTOSO"))

    assert first.method == "api_search"
    assert first.folder is not None and first.folder.similarity == 1.0
    assert second.method == "cache"
    assert second.folder_id == "n2"
    assert second.stats.cache_hits == 1
    assert len(lister.calls) == calls


def test_partial_matches_are_ranked_and_not_cached_by_name() -> None:
    tree = {
        "root": [("mao", "Muhammad Ali Othman"), ("group", "Group B")],
        "group": [("ali", "Ali")],
    }
    resolver = _resolver(FakeDriveLister(tree))

    result = asyncio.run(resolver.resolve("Muhammad Ali", fuzzy_match=True))

    assert result.found is True
    assert result.folder_id == "mao"
    assert [alt.id for alt in result.alternatives] == ["ali"]
    assert result.folder is not None and result.folder.similarity == 0.8
    assert resolver.get_stats().resolved_count == 0


def test_preload_then_resolve_needs_no_remote_calls() -> None:
    lister = FakeDriveLister(REGION_TREE)
    resolver = _resolver(lister)

    preload = asyncio.run(resolver.preload())
    calls = len(lister.calls)
    result = asyncio.run(resolver.resolve("Fajar Nugroho"))

    assert preload.success is True
    assert preload.folders_loaded == 8
    assert calls == 9
    assert result.method == "api_search"
    assert result.folder_id == "s3"
    assert result.stats.remote_calls == 0
    assert len(lister.calls) == calls


def test_preload_reports_root_failure() -> None:
    resolver = _resolver(FakeDriveLister(REGION_TREE, failing={"root"}))

    result = asyncio.run(resolver.preload())

    assert result.success is False
    assert result.folders_loaded == 0
    assert result.error == "listing root failed"


def test_missing_parent_folder_is_a_configuration_error() -> None:
    lister = FakeDriveLister(REGION_TREE)
    resolver = _resolver(lister, DriveConfig(parent_folder_id=" "))

    result = asyncio.run(resolver.resolve("Budi Santoso"))
    preload = asyncio.run(resolver.preload())

    assert result.found is False
    assert result.error == "Drive parent folder is not configured."
    assert preload.success is False
    assert lister.calls == []


def test_invalid_max_depth_override_is_rejected() -> None:
    lister = FakeDriveLister(REGION_TREE)
    resolver = _resolver(lister)

    result = asyncio.run(resolver.resolve("Budi Santoso", max_depth=0))

    assert result.found is False
    assert result.error is not None and "maxDepth" in result.error
    assert lister.calls == []


def test_root_listing_failure_surfaces_as_error() -> None:
    resolver = _resolver(FakeDriveLister(REGION_TREE, failing={"root"}))

    result = asyncio.run(resolver.resolve("Budi Santoso"))

    assert result.found is False
    assert result.method == "api_search"
    assert result.error == "listing root failed"


def test_unknown_name_is_not_found() -> None:
    resolver = _resolver(FakeDriveLister(REGION_TREE))

    result = asyncio.run(resolver.resolve("Zainal Abidin"))

    assert result.found is False
    assert result.error == "Folder not found"
    assert result.to_dict()["folder"] is None


def test_alternatives_are_capped() -> None:
    tree = {"root": [(f"f{index}", f"Santoso {index}") for index in range(8)]}
    resolver = _resolver(FakeDriveLister(tree))

    result = asyncio.run(resolver.resolve("Santoso"))

    assert result.folder_id == "f0"
    assert [alt.id for alt in result.alternatives] == ["f1", "f2", "f3", "f4", "f5"]
    assert result.stats.total_matches == 8


def test_config_controls_strategy_and_cache_usage() -> None:
    lister = FakeDriveLister(REGION_TREE)
    config = DriveConfig(parent_folder_id="root", search_strategy="DFS", folder_mapping_enabled=False)
    resolver = _resolver(lister, config)

    asyncio.run(resolver.resolve("Budi Santoso"))

    assert lister.listed_parents[:3] == ["root", "north", "n1"]
    assert resolver.get_stats().children_count == 0


class SlowLister(FakeDriveLister):
    async def list_child_folders(self, parent_id: str, page_token: Optional[str] = None) -> FolderPage:
        await asyncio.sleep(1)
        return await super().list_child_folders(parent_id, page_token)


def test_search_timeout_returns_not_found() -> None:
    resolver = _resolver(SlowLister(REGION_TREE), search_timeout=0.01)

    result = asyncio.run(resolver.resolve("Budi Santoso"))

    assert result.found is False
    assert result.error is not None and "timed out" in result.error


def test_invalidate_clears_cache() -> None:
    resolver = _resolver(FakeDriveLister(REGION_TREE))
    asyncio.run(resolver.resolve("Budi Santoso"))
    assert resolver.get_stats().resolved_count == 1

    resolver.invalidate()

    stats = resolver.get_stats()
    assert stats.resolved_count == 0
    assert stats.children_count == 0


class StaticTokenSource:
    async def access_token(self) -> str:
        return "token"

    async def refresh(self) -> str:
        return "token"


def test_unreadable_drive_response_is_reported_not_raised(tmp_path: Path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip at all")

    settings = Settings(
        drive_folder_id="root",
        admin_secret_key="secret",
        app_config_path=tmp_path / "app-config.json",
        drive_retry_backoff=0.0,
    )
    client = GoogleDriveClient(settings, StaticTokenSource(), transport=httpx.MockTransport(handler))
    resolver = FolderResolver(
        lister=client,
        cache=FolderCache(clock=FakeClock()),
        config_provider=StaticConfigProvider(),
    )

    result = asyncio.run(resolver.resolve("Budi Santoso"))

    assert result.found is False
    assert result.error is not None and result.error.startswith("Google Drive request failed")
