"""Bounded-depth search over the remote folder hierarchy."""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, List, Optional, Protocol, Set, Tuple

from .cache import FolderCache
from .errors import RemoteTransportError
from .models import FolderMatch, FolderPage, FolderRecord, SearchOptions
from .naming import EXACT_MATCH_SCORE, calculate_similarity

logger = logging.getLogger(__name__)


class FolderLister(Protocol):
    async def list_child_folders(
        self,
        parent_id: str,
        page_token: Optional[str] = None,
    ) -> FolderPage:
        ...


@dataclass
class TraversalOutcome:
    root_id: str
    matches: List[FolderMatch] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    remote_calls: int = 0
    cache_hits: int = 0
    exact_match_cached: bool = False
    matched_ids: Set[str] = field(default_factory=set)

    @property
    def root_error(self) -> Optional[str]:
        return self.failures.get(self.root_id)


@dataclass
class HierarchyLoad:
    folders_loaded: int = 0
    remote_calls: int = 0
    failures: Dict[str, str] = field(default_factory=dict)


class FolderTraversal:
    """Walks the hierarchy below a root folder looking for a participant name.

    Children listings come from the cache when allowed, otherwise from the
    remote lister with every page fetched before anything is cached. A parent
    whose listing fails is treated as having no children.
    """

    def __init__(self, lister: FolderLister, cache: FolderCache) -> None:
        self._lister = lister
        self._cache = cache

    async def _fetch_children(self, parent_id: str) -> Tuple[Tuple[FolderRecord, ...], int]:
        records: List[FolderRecord] = []
        calls = 0
        page_token: Optional[str] = None
        while True:
            page = await self._lister.list_child_folders(parent_id, page_token)
            calls += 1
            records.extend(page.records)
            if not page.next_page_token:
                return tuple(records), calls
            page_token = page.next_page_token

    async def _children(
        self,
        parent_id: str,
        options: SearchOptions,
        outcome: TraversalOutcome,
    ) -> Tuple[FolderRecord, ...]:
        if options.cache_enabled:
            cached = self._cache.get_children(parent_id)
            if cached is not None:
                outcome.cache_hits += 1
                return cached

        try:
            records, calls = await self._fetch_children(parent_id)
        except RemoteTransportError as exc:
            logger.warning(
                "Listing child folders failed, treating as empty",
                extra={"parent_id": parent_id, "error": str(exc)},
            )
            outcome.failures[parent_id] = str(exc)
            return ()

        outcome.remote_calls += calls
        if options.cache_enabled:
            self._cache.set_children(parent_id, records)
        return records

    def _consider(
        self,
        record: FolderRecord,
        target_name: str,
        options: SearchOptions,
        outcome: TraversalOutcome,
    ) -> None:
        if record.id in outcome.matched_ids:
            return
        similarity = calculate_similarity(record.name, target_name)
        if similarity < options.threshold:
            return

        outcome.matched_ids.add(record.id)
        outcome.matches.append(FolderMatch(record=record, similarity=similarity))
        if options.cache_enabled and similarity == EXACT_MATCH_SCORE and not outcome.exact_match_cached:
            # Keyed by the searched name so the next identical query is a direct hit.
            self._cache.set_resolved(target_name, record)
            outcome.exact_match_cached = True

    async def search(
        self,
        root_id: str,
        target_name: str,
        options: SearchOptions,
    ) -> TraversalOutcome:
        outcome = TraversalOutcome(root_id=root_id)
        if options.strategy == "DFS":
            await self._search_depth_first(root_id, target_name, options, outcome)
        else:
            await self._search_breadth_first(root_id, target_name, options, outcome)

        # sorted() is stable: equal scores keep discovery order.
        outcome.matches = sorted(outcome.matches, key=lambda match: match.similarity, reverse=True)
        logger.info(
            "Folder traversal finished",
            extra={
                "strategy": options.strategy,
                "target": target_name,
                "matches": len(outcome.matches),
                "remote_calls": outcome.remote_calls,
                "cache_hits": outcome.cache_hits,
            },
        )
        return outcome

    async def _search_breadth_first(
        self,
        root_id: str,
        target_name: str,
        options: SearchOptions,
        outcome: TraversalOutcome,
    ) -> None:
        queue: Deque[Tuple[str, int, Tuple[str, ...]]] = deque([(root_id, 0, ())])
        visited: Set[str] = set()

        while queue:
            folder_id, depth, path = queue.popleft()
            if depth >= options.max_depth or folder_id in visited:
                continue
            visited.add(folder_id)

            children = await self._children(folder_id, options, outcome)
            for child in children:
                positioned = child.positioned(depth + 1, path)
                self._consider(positioned, target_name, options, outcome)
                if depth + 1 < options.max_depth:
                    queue.append((child.id, depth + 1, positioned.path_names))

    async def _search_depth_first(
        self,
        root_id: str,
        target_name: str,
        options: SearchOptions,
        outcome: TraversalOutcome,
    ) -> None:
        if options.max_depth < 1:
            return

        visited: Set[str] = {root_id}
        root_children = await self._children(root_id, options, outcome)
        # Each frame holds the remaining siblings at one level, so descending
        # into a child before its next sibling gives pre-order visitation.
        stack: List[Tuple[Iterator[FolderRecord], int, Tuple[str, ...]]] = [
            (iter(root_children), 0, ())
        ]

        while stack:
            siblings, depth, path = stack[-1]
            child = next(siblings, None)
            if child is None:
                stack.pop()
                continue

            positioned = child.positioned(depth + 1, path)
            self._consider(positioned, target_name, options, outcome)
            if depth + 1 < options.max_depth and child.id not in visited:
                visited.add(child.id)
                grandchildren = await self._children(child.id, options, outcome)
                stack.append((iter(grandchildren), depth + 1, positioned.path_names))

    async def load_hierarchy(self, root_id: str, max_depth: int) -> HierarchyLoad:
        """Fetch and cache every listing down to ``max_depth`` breadth-first."""

        load = HierarchyLoad()
        queue: Deque[Tuple[str, int]] = deque([(root_id, 0)])
        visited: Set[str] = set()

        while queue:
            parent_id, level = queue.popleft()
            if level >= max_depth or parent_id in visited:
                continue
            visited.add(parent_id)

            try:
                records, calls = await self._fetch_children(parent_id)
            except RemoteTransportError as exc:
                logger.warning(
                    "Preload could not list child folders",
                    extra={"parent_id": parent_id, "error": str(exc)},
                )
                load.failures[parent_id] = str(exc)
                continue

            load.remote_calls += calls
            self._cache.set_children(parent_id, records)
            load.folders_loaded += len(records)
            for record in records:
                queue.append((record.id, level + 1))

        return load
