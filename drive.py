"""
Google Drive upload for rendered documents.

A DriveSession is built once from presets and handed to whoever needs it;
nothing here lives in module-level state.
"""
from __future__ import annotations

import io
import logging
import os
from enum import Enum
from typing import Any, Callable, Dict, Optional

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/drive.file"]
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
PDF_MIME_TYPE = "application/pdf"
VIEWER_URL = "https://drive.google.com/file/d/{file_id}/view"
DEFAULT_FOLDER_NAME = "Performa Invoices & Quotations"


class DriveError(RuntimeError):
    pass


class UploadStatus(str, Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


def viewer_url(file_id: str) -> str:
    return VIEWER_URL.format(file_id=file_id)


def _query_literal(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveSession:
    """Credentials plus a Drive v3 service, with an explicit init / sign-in lifecycle."""

    def __init__(
        self,
        client_id: str = "",
        client_secret: str = "",
        api_key: str = "",
        token_file: str = "",
        *,
        service_factory: Callable[..., Any] = build,
        flow_factory: Callable[..., Any] = InstalledAppFlow.from_client_config,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_key = api_key
        self.token_file = token_file
        self._service_factory = service_factory
        self._flow_factory = flow_factory
        self.credentials: Optional[Credentials] = None
        self._service: Any = None
        self.available = False

    @classmethod
    def from_presets(cls, drive_presets: Dict[str, Any], **kwargs: Any) -> "DriveSession":
        return cls(
            client_id=str(drive_presets.get("client_id", "")),
            client_secret=str(drive_presets.get("client_secret", "")),
            api_key=str(drive_presets.get("api_key", "")),
            token_file=str(drive_presets.get("token_file", "")),
            **kwargs,
        )

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    # -- lifecycle -------------------------------------------------------------

    def initialize(self) -> bool:
        """
        Load cached credentials and mark the session usable.

        Failures are logged and leave ``available`` False so callers can
        disable the upload action instead of crashing.
        """
        if not self.configured:
            logger.warning("Google Drive client id/secret not configured; upload disabled")
            self.available = False
            return False
        try:
            if self.token_file and os.path.exists(self.token_file):
                self.credentials = Credentials.from_authorized_user_file(self.token_file, SCOPES)
            if self.credentials is not None and self.credentials.valid:
                self._service = self._build_service()
            self.available = True
        except (OSError, ValueError, GoogleAuthError) as exc:
            logger.error("Failed to initialise Google Drive API: %s", exc)
            self.credentials = None
            self._service = None
            self.available = False
        return self.available

    def is_signed_in(self) -> bool:
        return self.credentials is not None and self.credentials.valid

    def sign_in(self) -> None:
        """Refresh expired credentials or run the interactive consent flow."""
        creds = self.credentials
        if creds is not None and creds.expired and creds.refresh_token:
            logger.info("Refreshing Google Drive credentials")
            creds.refresh(Request())
        else:
            client_config = {
                "installed": {
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                    "token_uri": "https://oauth2.googleapis.com/token",
                    "redirect_uris": ["http://localhost"],
                }
            }
            flow = self._flow_factory(client_config, SCOPES)
            creds = flow.run_local_server(port=0)
        self.credentials = creds
        self._save_token()
        self._service = self._build_service()

    def sign_out(self) -> None:
        self.credentials = None
        self._service = None
        if self.token_file and os.path.exists(self.token_file):
            os.remove(self.token_file)

    def ensure_signed_in(self) -> None:
        if not self.available:
            raise DriveError("Google Drive API is not initialised")
        if not self.is_signed_in():
            self.sign_in()
        elif self._service is None:
            self._service = self._build_service()

    def _build_service(self) -> Any:
        kwargs: Dict[str, Any] = {"credentials": self.credentials, "cache_discovery": False}
        if self.api_key:
            kwargs["developerKey"] = self.api_key
        return self._service_factory("drive", "v3", **kwargs)

    def _save_token(self) -> None:
        if not self.token_file or self.credentials is None:
            return
        to_json = getattr(self.credentials, "to_json", None)
        if not callable(to_json):
            return
        with open(self.token_file, "w", encoding="utf-8") as f:
            f.write(to_json())

    @property
    def service(self) -> Any:
        if self._service is None:
            raise DriveError("Not signed in to Google Drive")
        return self._service

    # -- files -----------------------------------------------------------------

    def find_or_create_folder(self, folder_name: str) -> str:
        """Id of the first folder named exactly ``folder_name``, creating one if none exists."""
        query = (
            f"name='{_query_literal(folder_name)}' and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        )
        response = self.service.files().list(q=query, fields="files(id, name)").execute()
        files = response.get("files", [])
        if files:
            return files[0]["id"]

        logger.info("Creating Drive folder %r", folder_name)
        folder = self.service.files().create(
            body={"name": folder_name, "mimeType": FOLDER_MIME_TYPE},
            fields="id",
        ).execute()
        return folder["id"]

    def upload(self, file_name: str, pdf_bytes: bytes, folder_name: Optional[str] = None) -> str:
        """
        Upload a PDF in one multipart request and return the new file id.

        Sign-in, folder resolution and the upload run strictly in that order.
        """
        self.ensure_signed_in()
        folder_id = self.find_or_create_folder(folder_name) if folder_name else None

        metadata: Dict[str, Any] = {"name": file_name, "mimeType": PDF_MIME_TYPE}
        if folder_id:
            metadata["parents"] = [folder_id]
        media = MediaIoBaseUpload(io.BytesIO(pdf_bytes), mimetype=PDF_MIME_TYPE, resumable=False)
        created = self.service.files().create(body=metadata, media_body=media, fields="id").execute()
        file_id = created.get("id")
        if not file_id:
            raise DriveError("Drive did not return a file id")
        logger.info("Uploaded %s to Drive as %s", file_name, file_id)
        return file_id


class DriveUploader:
    """Save-to-Drive action state: idle / uploading / success / error."""

    def __init__(self, session: DriveSession, folder_name: str = DEFAULT_FOLDER_NAME):
        self.session = session
        self.folder_name = folder_name
        self.status = UploadStatus.IDLE
        self.file_url: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.session.available and self.status is not UploadStatus.UPLOADING

    def save(
        self,
        file_name: str,
        render_pdf: Callable[[], bytes],
        folder_name: Optional[str] = None,
    ) -> UploadStatus:
        self.status = UploadStatus.UPLOADING
        self.file_url = None
        try:
            pdf_bytes = render_pdf()
            file_id = self.session.upload(file_name, pdf_bytes, folder_name or self.folder_name)
            self.file_url = viewer_url(file_id)
            self.status = UploadStatus.SUCCESS
        except Exception:
            logger.exception("Error saving %s to Google Drive", file_name)
            self.status = UploadStatus.ERROR
        return self.status
