from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..dependencies import get_folder_resolver, require_admin_secret
from ..services.folder_search import FolderResolver

router = APIRouter(prefix="/admin/folder-cache", tags=["folder-cache"])


@router.get("")
def get_folder_cache_stats(
    resolver: FolderResolver = Depends(get_folder_resolver),
) -> Dict[str, Any]:
    stats = resolver.get_stats()
    return {"success": True, "data": stats.to_dict()}


@router.post("/preload", dependencies=[Depends(require_admin_secret)])
async def preload_folder_structure(
    resolver: FolderResolver = Depends(get_folder_resolver),
) -> Dict[str, Any]:
    result = await resolver.preload()
    message = (
        f"Successfully preloaded {result.folders_loaded} folders"
        if result.success
        else "Failed to preload folder structure"
    )
    return {
        "success": result.success,
        "message": message,
        "data": {"foldersLoaded": result.folders_loaded, "error": result.error},
    }


@router.delete("", dependencies=[Depends(require_admin_secret)])
def clear_folder_cache(
    resolver: FolderResolver = Depends(get_folder_resolver),
) -> Dict[str, Any]:
    resolver.invalidate()
    return {"success": True, "message": "Folder cache cleared successfully"}
