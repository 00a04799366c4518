"""Public entry points for mapping participant names to Drive folders."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Optional, Protocol

from .cache import FolderCache
from .errors import ConfigurationError, FolderSearchError
from .models import (
    MAX_ALTERNATIVES,
    CacheStats,
    FolderMatch,
    PreloadResult,
    ResolutionResult,
    SearchOptions,
    SearchStats,
    SearchStrategy,
)
from .traversal import FolderLister, FolderTraversal

logger = logging.getLogger(__name__)

FOLDER_NOT_FOUND_MESSAGE = "Folder not found"


class DriveConfigLike(Protocol):
    parent_folder_id: str
    max_depth_level: int
    search_strategy: SearchStrategy
    folder_mapping_enabled: bool

    def validate_for_search(self) -> None:
        ...


class DriveConfigProvider(Protocol):
    def get_drive_config(self) -> DriveConfigLike:
        ...


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


class FolderResolver:
    """Resolves participant folders and exposes the cache admin operations.

    None of the public coroutines raise: failures are reported on the
    returned result objects.
    """

    def __init__(
        self,
        *,
        lister: FolderLister,
        cache: FolderCache,
        config_provider: DriveConfigProvider,
        search_timeout: Optional[float] = None,
    ) -> None:
        self._cache = cache
        self._config_provider = config_provider
        self._traversal = FolderTraversal(lister, cache)
        self._search_timeout = search_timeout

    @property
    def cache(self) -> FolderCache:
        return self._cache

    def _search_options(
        self,
        config: DriveConfigLike,
        *,
        max_depth: Optional[int],
        strategy: Optional[SearchStrategy],
        cache_enabled: Optional[bool],
        fuzzy_match: Optional[bool],
    ) -> SearchOptions:
        return SearchOptions(
            max_depth=max_depth if max_depth is not None else config.max_depth_level,
            strategy=strategy or config.search_strategy,
            cache_enabled=(
                cache_enabled if cache_enabled is not None else config.folder_mapping_enabled
            ),
            fuzzy_match=fuzzy_match if fuzzy_match is not None else True,
        )

    async def resolve(
        self,
        participant_name: str,
        folder_id_hint: Optional[str] = None,
        *,
        max_depth: Optional[int] = None,
        strategy: Optional[SearchStrategy] = None,
        cache_enabled: Optional[bool] = None,
        fuzzy_match: Optional[bool] = None,
    ) -> ResolutionResult:
        started = time.perf_counter()

        hint = (folder_id_hint or "").strip()
        if hint:
            return ResolutionResult(found=True, method="direct", folder_id=hint)

        try:
            config = self._config_provider.get_drive_config()
            config.validate_for_search()
            options = self._search_options(
                config,
                max_depth=max_depth,
                strategy=strategy,
                cache_enabled=cache_enabled,
                fuzzy_match=fuzzy_match,
            )
            if options.max_depth < 1:
                raise ConfigurationError(f"maxDepth must be at least 1, got {options.max_depth}.")

            if options.cache_enabled:
                cached = self._cache.get_resolved(participant_name)
                if cached is not None:
                    return ResolutionResult(
                        found=True,
                        method="cache",
                        folder_id=cached.id,
                        folder=FolderMatch(record=cached, similarity=1.0),
                        stats=SearchStats(
                            search_time_ms=_elapsed_ms(started), cache_hits=1, total_matches=1
                        ),
                    )

            search = self._traversal.search(config.parent_folder_id, participant_name, options)
            if self._search_timeout:
                outcome = await asyncio.wait_for(search, timeout=self._search_timeout)
            else:
                outcome = await search
        except asyncio.TimeoutError:
            logger.warning(
                "Folder search timed out",
                extra={"participant": participant_name, "timeout": self._search_timeout},
            )
            return ResolutionResult(
                found=False,
                method="api_search",
                error=f"Folder search timed out after {self._search_timeout} seconds.",
                stats=SearchStats(search_time_ms=_elapsed_ms(started)),
            )
        except FolderSearchError as exc:
            logger.error("Folder search failed for %s: %s", participant_name, exc)
            return ResolutionResult(
                found=False,
                method="api_search",
                error=str(exc),
                stats=SearchStats(search_time_ms=_elapsed_ms(started)),
            )

        stats = SearchStats(
            search_time_ms=_elapsed_ms(started),
            cache_hits=outcome.cache_hits,
            total_matches=len(outcome.matches),
            remote_calls=outcome.remote_calls,
        )

        if not outcome.matches:
            return ResolutionResult(
                found=False,
                method="api_search",
                error=outcome.root_error or FOLDER_NOT_FOUND_MESSAGE,
                stats=stats,
            )

        best, *alternatives = outcome.matches
        return ResolutionResult(
            found=True,
            method="api_search",
            folder_id=best.id,
            folder=best,
            alternatives=alternatives[:MAX_ALTERNATIVES],
            stats=stats,
        )

    async def preload(self) -> PreloadResult:
        """Clear the cache and warm it with every listing down to the configured depth."""

        try:
            config = self._config_provider.get_drive_config()
            config.validate_for_search()
            self._cache.clear()
            load = await self._traversal.load_hierarchy(
                config.parent_folder_id, config.max_depth_level
            )
        except FolderSearchError as exc:
            logger.error("Folder structure preload failed: %s", exc)
            return PreloadResult(success=False, folders_loaded=0, error=str(exc))

        root_error = load.failures.get(config.parent_folder_id)
        if root_error is not None:
            return PreloadResult(success=False, folders_loaded=0, error=root_error)

        logger.info(
            "Preloaded folder structure",
            extra={
                "folders_loaded": load.folders_loaded,
                "remote_calls": load.remote_calls,
                "failed_parents": len(load.failures),
            },
        )
        return PreloadResult(success=True, folders_loaded=load.folders_loaded)

    def invalidate(self) -> None:
        self._cache.clear()
        logger.info("Folder cache cleared")

    def get_stats(self) -> CacheStats:
        return self._cache.stats()

