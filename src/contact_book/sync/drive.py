"""
Google Drive object store.

One remote object per name, kept in the app data folder (a private,
per-application space). Upload overwrites; download fails with
RemoteObjectNotFound when the object is absent.

Handles:
- Drive service creation
- Request execution with retry (429, 5xx, network errors)
- Auth failures (401/403) -> AuthError
- Other API failures -> TransportError
"""

import io
import logging
import time
from pathlib import Path
from typing import Optional, Protocol

from google.auth.exceptions import RefreshError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build, Resource
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaFileUpload, MediaIoBaseDownload

from contact_book.contacts.errors import AuthError, AuthErrorKind, TransportError


APP_DATA_FOLDER = "appDataFolder"
MIME_TYPE = "text/plain"


logger = logging.getLogger(__name__)


class RemoteObjectNotFound(Exception):
    """Remote object does not exist."""

    def __init__(self, remote_name: str):
        self.remote_name = remote_name
        super().__init__(f"Remote object '{remote_name}' not found")


class ObjectStore(Protocol):
    """Whole-object transfer between a local file and a remote name."""

    def upload(self, local_path: Path, remote_name: str) -> None:
        ...

    def download(self, remote_name: str, local_path: Path) -> None:
        ...


def build_drive_service(credentials: Credentials) -> Resource:
    return build("drive", "v3", credentials=credentials, cache_discovery=False)


def execute_with_retry(request, operation: str, max_retries: int = 3):
    """
    Execute a Drive API request with retry and error translation.

    Handles:
    - 401/403 or failed token refresh -> AuthError(NOT_AUTHENTICATED), no retry
    - 429 rate limit -> retry with exponential backoff
    - 5xx server errors -> retry
    - Network errors -> retry, then TransportError

    Raises:
        AuthError: Token invalid or revoked
        TransportError: Request failed after retries, or other API error
        HttpError: 404, for the caller to interpret
    """
    for attempt in range(max_retries):
        try:
            return request.execute()

        except HttpError as e:
            status = e.resp.status
            error_content = e.content.decode("utf-8", errors="ignore") if e.content else ""

            logger.warning(
                f"Drive API error {status} during {operation} "
                f"(attempt {attempt + 1}/{max_retries}): {error_content[:200]}"
            )

            if status in (401, 403):
                raise AuthError(
                    AuthErrorKind.NOT_AUTHENTICATED,
                    f"Drive authorization required: {error_content[:100]}",
                ) from e

            if status == 404:
                raise

            if status == 429 or status >= 500:
                if attempt < max_retries - 1:
                    wait = 2 ** attempt
                    logger.info(f"Retrying {operation} in {wait}s...")
                    time.sleep(wait)
                    continue

            raise TransportError(operation, f"HTTP {status}: {error_content[:200]}") from e

        except RefreshError as e:
            raise AuthError(AuthErrorKind.NOT_AUTHENTICATED, f"Token refresh failed: {e}") from e

        except Exception as e:
            # Network errors (httplib2, socket, ssl) - retry
            if attempt < max_retries - 1:
                wait = 2 ** attempt
                logger.warning(f"{operation} failed: {e}, retrying in {wait}s...")
                time.sleep(wait)
                continue
            raise TransportError(operation, str(e)) from e

    raise TransportError(operation, "request failed after all retries")


class DriveObjectStore:
    """ObjectStore backed by the Drive app data folder."""

    def __init__(self, service: Resource):
        self.service = service

    @classmethod
    def from_credentials(cls, credentials: Credentials) -> "DriveObjectStore":
        return cls(build_drive_service(credentials))

    def find_file_id(self, remote_name: str) -> Optional[str]:
        escaped = remote_name.replace("\\", "\\\\").replace("'", "\\'")
        request = self.service.files().list(
            spaces=APP_DATA_FOLDER,
            q=f"name = '{escaped}' and trashed = false",
            fields="files(id, name)",
            pageSize=1,
        )
        try:
            result = execute_with_retry(request, "find")
        except HttpError as e:
            raise TransportError("find", f"HTTP {e.resp.status}") from e
        files = result.get("files", [])
        return files[0]["id"] if files else None

    def upload(self, local_path: Path, remote_name: str) -> None:
        """Upload local_path, overwriting any existing object with that name."""
        media = MediaFileUpload(str(local_path), mimetype=MIME_TYPE, resumable=False)
        file_id = self.find_file_id(remote_name)

        if file_id:
            request = self.service.files().update(
                fileId=file_id,
                media_body=media,
                fields="id",
            )
        else:
            request = self.service.files().create(
                body={"name": remote_name, "parents": [APP_DATA_FOLDER]},
                media_body=media,
                fields="id",
            )

        try:
            result = execute_with_retry(request, "upload")
        except HttpError as e:
            raise TransportError("upload", f"HTTP {e.resp.status}") from e

        logger.info(f"Uploaded {local_path} to Drive as '{remote_name}' ({result.get('id')})")

    def download(self, remote_name: str, local_path: Path) -> None:
        """Download the remote object to local_path, replacing it."""
        file_id = self.find_file_id(remote_name)
        if file_id is None:
            raise RemoteObjectNotFound(remote_name)

        buffer = io.BytesIO()
        downloader = MediaIoBaseDownload(buffer, self.service.files().get_media(fileId=file_id))

        try:
            done = False
            while not done:
                _, done = downloader.next_chunk()
        except HttpError as e:
            if e.resp.status == 404:
                raise RemoteObjectNotFound(remote_name) from e
            if e.resp.status in (401, 403):
                raise AuthError(AuthErrorKind.NOT_AUTHENTICATED, "Drive authorization required") from e
            raise TransportError("download", f"HTTP {e.resp.status}") from e
        except RefreshError as e:
            raise AuthError(AuthErrorKind.NOT_AUTHENTICATED, f"Token refresh failed: {e}") from e
        except Exception as e:
            raise TransportError("download", str(e)) from e

        # Only touch the local file once the whole object arrived
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(buffer.getvalue())
        logger.info(f"Downloaded '{remote_name}' from Drive to {local_path}")
