from .client import DRIVE_FOLDER_MIME_TYPE, GoogleDriveClient
from .credentials import ServiceAccountTokenSource

__all__ = ["DRIVE_FOLDER_MIME_TYPE", "GoogleDriveClient", "ServiceAccountTokenSource"]
