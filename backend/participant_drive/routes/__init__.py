from .config import router as config_router
from .folder_cache import router as folder_cache_router
from .folders import router as folders_router

__all__ = ["config_router", "folder_cache_router", "folders_router"]
