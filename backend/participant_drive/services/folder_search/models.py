from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Tuple

SearchStrategy = Literal["BFS", "DFS"]
ResolutionMethod = Literal["direct", "cache", "api_search"]

SEARCH_STRATEGIES: Tuple[str, ...] = ("BFS", "DFS")
DEFAULT_MAX_DEPTH = 3
FUZZY_MATCH_THRESHOLD = 0.6
EXACT_MATCH_THRESHOLD = 1.0
MAX_ALTERNATIVES = 5


@dataclass(frozen=True)
class FolderRecord:
    """A Drive folder as observed while walking the hierarchy.

    ``depth`` and ``path_names`` are zero/empty when the record comes straight
    from a listing call; the traversal assigns them with :meth:`positioned`.
    """

    id: str
    name: str
    parent_ids: Tuple[str, ...] = ()
    depth: int = 0
    path_names: Tuple[str, ...] = ()

    def positioned(self, depth: int, parent_path: Tuple[str, ...]) -> "FolderRecord":
        return replace(self, depth=depth, path_names=parent_path + (self.name,))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "parents": list(self.parent_ids),
            "level": self.depth,
            "path": list(self.path_names),
        }


@dataclass(frozen=True)
class FolderPage:
    """One page of a child-folder listing."""

    records: Tuple[FolderRecord, ...]
    next_page_token: Optional[str] = None


@dataclass(frozen=True)
class FolderMatch:
    record: FolderRecord
    similarity: float

    @property
    def id(self) -> str:
        return self.record.id

    @property
    def name(self) -> str:
        return self.record.name

    def to_dict(self) -> Dict[str, Any]:
        payload = self.record.to_dict()
        payload["similarity"] = self.similarity
        return payload


@dataclass(frozen=True)
class SearchOptions:
    max_depth: int = DEFAULT_MAX_DEPTH
    strategy: SearchStrategy = "BFS"
    cache_enabled: bool = True
    fuzzy_match: bool = True

    @property
    def threshold(self) -> float:
        return FUZZY_MATCH_THRESHOLD if self.fuzzy_match else EXACT_MATCH_THRESHOLD


@dataclass
class SearchStats:
    search_time_ms: float = 0.0
    cache_hits: int = 0
    total_matches: int = 0
    remote_calls: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "searchTime": round(self.search_time_ms, 3),
            "cacheHits": self.cache_hits,
            "totalFolders": self.total_matches,
            "remoteCalls": self.remote_calls,
        }


@dataclass
class ResolutionResult:
    found: bool
    method: ResolutionMethod
    folder_id: Optional[str] = None
    folder: Optional[FolderMatch] = None
    alternatives: List[FolderMatch] = field(default_factory=list)
    error: Optional[str] = None
    stats: SearchStats = field(default_factory=SearchStats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "found": self.found,
            "searchMethod": self.method,
            "folderId": self.folder_id,
            "folder": self.folder.to_dict() if self.folder else None,
            "alternatives": [match.to_dict() for match in self.alternatives],
            "error": self.error,
            "stats": self.stats.to_dict(),
        }


@dataclass
class PreloadResult:
    success: bool
    folders_loaded: int = 0
    error: Optional[str] = None


@dataclass(frozen=True)
class CacheStats:
    resolved_count: int
    children_count: int
    is_any_expired: bool
    last_update: Optional[datetime]
    max_resolved: Optional[int] = None
    max_children: Optional[int] = None
    ttl_seconds: float = 0.0
    resolved_average_access: float = 0.0
    children_average_access: float = 0.0

    @property
    def status(self) -> str:
        if self.is_any_expired:
            return "expired"
        if self.resolved_count or self.children_count:
            return "active"
        return "empty"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resolvedCount": self.resolved_count,
            "childrenCount": self.children_count,
            "isExpired": self.is_any_expired,
            "lastUpdate": self.last_update.isoformat() if self.last_update else None,
            "status": self.status,
            "maxResolved": self.max_resolved,
            "maxChildren": self.max_children,
            "ttlSeconds": self.ttl_seconds,
            "resolvedAverageAccess": self.resolved_average_access,
            "childrenAverageAccess": self.children_average_access,
        }
