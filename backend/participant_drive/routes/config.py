from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from ..config import DriveConfigService
from ..dependencies import get_drive_config_service, require_admin_secret

router = APIRouter(prefix="/admin/config", tags=["drive-config"])


@router.get("/drive")
def get_drive_config(
    config_service: DriveConfigService = Depends(get_drive_config_service),
) -> Dict[str, Any]:
    config = config_service.get_drive_config()
    return {"success": True, "data": config.model_dump(mode="json", by_alias=True)}


@router.put("/drive", dependencies=[Depends(require_admin_secret)])
def update_drive_config(
    payload: Dict[str, Any] = Body(...),
    config_service: DriveConfigService = Depends(get_drive_config_service),
) -> Dict[str, Any]:
    try:
        updated = config_service.update_drive_config(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=422, detail=exc.errors(include_url=False, include_context=False)
        ) from exc
    return {"success": True, "data": updated.model_dump(mode="json", by_alias=True)}
