from __future__ import annotations

from typing import Optional


class FolderSearchError(Exception):
    """Base class for failures raised inside the folder search services."""


class RemoteTransportError(FolderSearchError):
    """A Google Drive listing call failed (network, auth, quota or payload)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(FolderSearchError):
    """The drive configuration cannot be used for a search."""
