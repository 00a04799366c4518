from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .services.folder_search.errors import ConfigurationError
from .services.folder_search.models import DEFAULT_MAX_DEPTH, SearchStrategy

load_dotenv()

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    """Application configuration loaded from environment variables."""

    drive_folder_id: str
    admin_secret_key: str
    app_config_path: Path
    service_account_file: Optional[Path] = None
    service_account_email: str = ""
    service_account_private_key: str = ""
    drive_request_timeout: float = 10.0
    drive_max_retries: int = 3
    drive_retry_backoff: float = 1.0
    folder_cache_ttl_seconds: float = 30 * 60
    folder_cache_max_resolved: int = 1000
    folder_cache_max_children: int = 100
    folder_cache_sweep_seconds: float = 5 * 60
    folder_search_timeout: Optional[float] = None
    log_level: str = "INFO"

    @property
    def has_service_account(self) -> bool:
        if self.service_account_file is not None:
            return True
        return bool(self.service_account_email and self.service_account_private_key)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default


def load_settings() -> Settings:
    service_account_env = os.getenv("GOOGLE_SERVICE_ACCOUNT_FILE")
    config_path_env = os.getenv("APP_CONFIG_PATH")
    default_config_path = Path.cwd() / ".config" / "app-config.json"
    search_timeout = _env_float("FOLDER_SEARCH_TIMEOUT", 0.0)

    return Settings(
        drive_folder_id=os.getenv("GOOGLE_DRIVE_FOLDER_ID", ""),
        admin_secret_key=os.getenv("ADMIN_SECRET_KEY", ""),
        app_config_path=Path(config_path_env).expanduser() if config_path_env else default_config_path,
        service_account_file=Path(service_account_env).expanduser() if service_account_env else None,
        service_account_email=os.getenv("GOOGLE_SERVICE_ACCOUNT_EMAIL", ""),
        service_account_private_key=os.getenv("GOOGLE_PRIVATE_KEY", "").replace("\\n", "\n"),
        drive_request_timeout=_env_float("DRIVE_REQUEST_TIMEOUT", 10.0),
        drive_max_retries=max(0, _env_int("DRIVE_MAX_RETRIES", 3)),
        drive_retry_backoff=_env_float("DRIVE_RETRY_BACKOFF", 1.0),
        folder_cache_ttl_seconds=_env_float("FOLDER_CACHE_TTL_SECONDS", 30 * 60),
        folder_cache_max_resolved=_env_int("FOLDER_CACHE_MAX_RESOLVED", 1000),
        folder_cache_max_children=_env_int("FOLDER_CACHE_MAX_CHILDREN", 100),
        folder_cache_sweep_seconds=_env_float("FOLDER_CACHE_SWEEP_SECONDS", 5 * 60),
        folder_search_timeout=search_timeout if search_timeout > 0 else None,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class DriveConfig(BaseModel):
    """Folder hierarchy settings editable at runtime through the admin API."""

    model_config = ConfigDict(
        extra="ignore", alias_generator=_to_camel, populate_by_name=True
    )

    parent_folder_id: str = ""
    max_depth_level: int = Field(DEFAULT_MAX_DEPTH, ge=1)
    search_strategy: SearchStrategy = "BFS"
    folder_mapping_enabled: bool = True

    def validate_for_search(self) -> None:
        if not self.parent_folder_id.strip():
            raise ConfigurationError("Drive parent folder is not configured.")
        if self.max_depth_level < 1:
            raise ConfigurationError(
                f"maxDepthLevel must be at least 1, got {self.max_depth_level}."
            )


class DriveConfigStore:
    """Persist the drive section of the application config to a JSON file."""

    SECTION = "drive"

    def __init__(self, path: Path) -> None:
        self._path = path

    def load_all(self) -> Dict[str, Any]:
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, OSError):
            logger.warning("Failed to read app config at %s, using defaults", self._path)
            return {}

        if not isinstance(data, dict):
            return {}
        return data

    def load_drive(self) -> Dict[str, Any]:
        section = self.load_all().get(self.SECTION)
        return section if isinstance(section, dict) else {}

    def save_drive(self, payload: Mapping[str, Any]) -> None:
        data = self.load_all()
        data[self.SECTION] = dict(payload)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        serialized = json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True)
        temp_path = self._path.with_suffix(".tmp")
        temp_path.write_text(serialized, encoding="utf-8")
        temp_path.replace(self._path)


class DriveConfigService:
    """Configuration provider for the folder resolver.

    The stored file is re-read on every call so that admin edits take effect
    on the next resolution without a restart.
    """

    def __init__(self, settings: Settings, store: Optional[DriveConfigStore] = None) -> None:
        self._settings = settings
        self._store = store or DriveConfigStore(settings.app_config_path)

    def _defaults(self) -> Dict[str, Any]:
        return DriveConfig(parent_folder_id=self._settings.drive_folder_id).model_dump(by_alias=True)

    def get_drive_config(self) -> DriveConfig:
        merged = self._defaults()
        merged.update(self._store.load_drive())
        try:
            return DriveConfig.model_validate(merged)
        except ValidationError as exc:
            logger.warning("Stored drive config is invalid, using defaults: %s", exc)
            return DriveConfig.model_validate(self._defaults())

    def update_drive_config(self, updates: Mapping[str, Any]) -> DriveConfig:
        """Merge ``updates`` over the current config, validate and persist.

        Raises :class:`pydantic.ValidationError` when the merged result is invalid.
        """

        merged = self.get_drive_config().model_dump(by_alias=True)
        merged.update({_to_camel(key): value for key, value in updates.items()})
        config = DriveConfig.model_validate(merged)
        self._store.save_drive(config.model_dump(mode="json", by_alias=True))
        return config
