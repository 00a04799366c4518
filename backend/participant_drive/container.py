from __future__ import annotations

from .config import DriveConfigService, Settings, load_settings
from .services.folder_search import FolderCache, FolderCacheSweeper, FolderResolver
from .services.google_drive import GoogleDriveClient, ServiceAccountTokenSource


class Container:
    """Application service container for dependency management.

    The folder cache is created here once and shared by reference with every
    component that needs it.
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or load_settings()
        self._drive_config_service = DriveConfigService(self._settings)
        self._token_source = ServiceAccountTokenSource(self._settings)
        self._drive_client = GoogleDriveClient(self._settings, self._token_source)
        self._folder_cache = FolderCache(
            ttl_seconds=self._settings.folder_cache_ttl_seconds,
            max_resolved=self._settings.folder_cache_max_resolved,
            max_children=self._settings.folder_cache_max_children,
        )
        self._cache_sweeper = FolderCacheSweeper(
            self._folder_cache, self._settings.folder_cache_sweep_seconds
        )
        self._folder_resolver = FolderResolver(
            lister=self._drive_client,
            cache=self._folder_cache,
            config_provider=self._drive_config_service,
            search_timeout=self._settings.folder_search_timeout,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def drive_config_service(self) -> DriveConfigService:
        return self._drive_config_service

    @property
    def drive_client(self) -> GoogleDriveClient:
        return self._drive_client

    @property
    def folder_cache(self) -> FolderCache:
        return self._folder_cache

    @property
    def cache_sweeper(self) -> FolderCacheSweeper:
        return self._cache_sweeper

    @property
    def folder_resolver(self) -> FolderResolver:
        return self._folder_resolver
