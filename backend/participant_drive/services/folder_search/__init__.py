from .cache import FolderCache, FolderCacheSweeper
from .errors import ConfigurationError, FolderSearchError, RemoteTransportError
from .models import (
    CacheStats,
    FolderMatch,
    FolderPage,
    FolderRecord,
    PreloadResult,
    ResolutionResult,
    SearchOptions,
)
from .naming import calculate_similarity, normalize_name
from .resolver import FolderResolver
from .traversal import FolderTraversal

__all__ = [
    "CacheStats",
    "ConfigurationError",
    "FolderCache",
    "FolderCacheSweeper",
    "FolderMatch",
    "FolderPage",
    "FolderRecord",
    "FolderResolver",
    "FolderSearchError",
    "FolderTraversal",
    "PreloadResult",
    "RemoteTransportError",
    "ResolutionResult",
    "SearchOptions",
    "calculate_similarity",
    "normalize_name",
]
