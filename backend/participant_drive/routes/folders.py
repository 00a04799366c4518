from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from fastapi import APIRouter, Depends, Query

from ..dependencies import get_folder_resolver
from ..services.folder_search import FolderResolver

router = APIRouter(prefix="/folders", tags=["folders"])


@router.get("/resolve")
async def resolve_participant_folder(
    name: str = Query(..., min_length=1, description="Participant display name"),
    folder_id: Optional[str] = Query(None, alias="folderId", description="Stored folder id, if any"),
    strategy: Optional[Literal["BFS", "DFS"]] = Query(None),
    max_depth: Optional[int] = Query(None, alias="maxDepth", ge=1),
    fuzzy_match: Optional[bool] = Query(None, alias="fuzzyMatch"),
    cache_enabled: Optional[bool] = Query(None, alias="cacheEnabled"),
    resolver: FolderResolver = Depends(get_folder_resolver),
) -> Dict[str, Any]:
    result = await resolver.resolve(
        name,
        folder_id,
        max_depth=max_depth,
        strategy=strategy,
        cache_enabled=cache_enabled,
        fuzzy_match=fuzzy_match,
    )
    return result.to_dict()
