"""
Sync gateway: whole-file upload and download of the contact list.

State machine:
    UNAUTHENTICATED -> AUTHENTICATED -> {UPLOADING, DOWNLOADING} -> AUTHENTICATED

Upload replaces the remote object entirely; download returns the remote
contacts for the caller to replace the registry with. No merging.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, Optional

from google.oauth2.credentials import Credentials

from contact_book.contacts import codec
from contact_book.contacts.errors import AuthError, AuthErrorKind, TransportError
from contact_book.contacts.models import Contact
from contact_book.contacts.registry import ContactRegistry
from contact_book.settings import settings
from contact_book.sync.auth import CodeProvider, authenticate
from contact_book.sync.drive import DriveObjectStore, ObjectStore, RemoteObjectNotFound


logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    UPLOADING = "uploading"
    DOWNLOADING = "downloading"


class SyncGateway:
    """
    Pushes and pulls the contact list through an ObjectStore.

    The local staging file is overwritten on every upload and download.
    """

    def __init__(
        self,
        store: Optional[ObjectStore] = None,
        staging_path: Optional[Path] = None,
        remote_name: Optional[str] = None,
        account: Optional[str] = None,
        authenticator: Callable[..., Credentials] = authenticate,
        store_factory: Callable[[Credentials], ObjectStore] = DriveObjectStore.from_credentials,
    ):
        self.store = store
        self.staging_path = Path(staging_path) if staging_path else settings.get_staging_path()
        self.remote_name = remote_name or settings.remote_name
        self.account = account
        self._authenticator = authenticator
        self._store_factory = store_factory
        self.state = SyncState.AUTHENTICATED if store is not None else SyncState.UNAUTHENTICATED
        self.remote_missing = False

    @property
    def is_authenticated(self) -> bool:
        return self.state is not SyncState.UNAUTHENTICATED

    def authenticate(self, code_provider: CodeProvider) -> Credentials:
        """
        Obtain a bearer credential and bind the object store.

        Raises AuthError; the gateway stays unauthenticated on failure.
        """
        creds = self._authenticator(code_provider, account=self.account)
        self.store = self._store_factory(creds)
        self.state = SyncState.AUTHENTICATED
        return creds

    def _begin(self, state: SyncState) -> ObjectStore:
        if self.state is SyncState.UNAUTHENTICATED or self.store is None:
            raise AuthError(AuthErrorKind.NOT_AUTHENTICATED, "Authenticate before syncing")
        if self.state is not SyncState.AUTHENTICATED:
            raise RuntimeError(f"Sync already in progress ({self.state.value})")
        self.state = state
        return self.store

    def upload(self, contacts: Iterable[Contact]) -> int:
        """
        Encode contacts to the staging file and push it to the remote object.

        Returns the number of contacts uploaded.
        Raises TransportError on local write or remote transfer failure.
        """
        store = self._begin(SyncState.UPLOADING)
        try:
            contacts = list(contacts)
            text = codec.encode_all(contacts)
            try:
                self.staging_path.parent.mkdir(parents=True, exist_ok=True)
                self.staging_path.write_text(text + "\n" if text else "", encoding="utf-8")
            except OSError as e:
                raise TransportError("upload", f"cannot write {self.staging_path}: {e}") from e

            try:
                store.upload(self.staging_path, self.remote_name)
            except OSError as e:
                raise TransportError("upload", str(e)) from e

            logger.info(f"Uploaded {len(contacts)} contact(s) to '{self.remote_name}'")
            return len(contacts)
        except AuthError:
            self.state = SyncState.UNAUTHENTICATED
            raise
        finally:
            if self.state is SyncState.UPLOADING:
                self.state = SyncState.AUTHENTICATED

    def download(self) -> list[Contact]:
        """
        Fetch the remote object and decode it.

        A missing remote object yields an empty list. Lines that do not
        match the record format are logged and skipped.
        Raises TransportError on transfer or local read failure.
        """
        store = self._begin(SyncState.DOWNLOADING)
        try:
            self.remote_missing = False
            try:
                store.download(self.remote_name, self.staging_path)
            except RemoteObjectNotFound:
                logger.warning(f"Remote object '{self.remote_name}' not found")
                self.remote_missing = True
                return []
            except OSError as e:
                raise TransportError("download", str(e)) from e

            try:
                text = self.staging_path.read_text(encoding="utf-8")
            except OSError as e:
                raise TransportError("download", f"cannot read {self.staging_path}: {e}") from e

            contacts = codec.decode_lines(text.splitlines())
            logger.info(f"Downloaded {len(contacts)} contact(s) from '{self.remote_name}'")
            return contacts
        except AuthError:
            self.state = SyncState.UNAUTHENTICATED
            raise
        finally:
            if self.state is SyncState.DOWNLOADING:
                self.state = SyncState.AUTHENTICATED

    def push(self, registry: ContactRegistry) -> int:
        return self.upload(registry.contacts)

    def pull(self, registry: ContactRegistry) -> Optional[int]:
        """
        Replace the registry contents with the remote contacts.

        Returns the number of contacts loaded, or None when the remote
        object does not exist (registry left as is).
        """
        contacts = self.download()
        if self.remote_missing:
            return None
        return registry.replace_all(contacts)
