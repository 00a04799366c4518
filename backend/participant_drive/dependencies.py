from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request

from .config import DriveConfigService, Settings
from .container import Container
from .services.folder_search import FolderResolver


def get_container(request: Request) -> Container:
    container = getattr(request.app.state, "container", None)
    if not isinstance(container, Container):
        raise RuntimeError("Application container is not configured on FastAPI app state.")
    return container


def get_settings(container: Container = Depends(get_container)) -> Settings:
    return container.settings


def get_folder_resolver(container: Container = Depends(get_container)) -> FolderResolver:
    return container.folder_resolver


def get_drive_config_service(
    container: Container = Depends(get_container),
) -> DriveConfigService:
    return container.drive_config_service


def require_admin_secret(
    x_admin_secret: Optional[str] = Header(None, alias="x-admin-secret"),
    settings: Settings = Depends(get_settings),
) -> None:
    expected = settings.admin_secret_key
    if not expected or not x_admin_secret or not secrets.compare_digest(
        x_admin_secret.encode("utf-8"), expected.encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="Unauthorized")
