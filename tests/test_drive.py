"""
Tests for the Drive object store with a mocked API client.
"""

from unittest.mock import MagicMock, patch

import pytest
import httplib2
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from contact_book.contacts.errors import AuthError, TransportError
from contact_book.sync.drive import (
    APP_DATA_FOLDER,
    DriveObjectStore,
    RemoteObjectNotFound,
    execute_with_retry,
)


def http_error(status):
    resp = MagicMock(status=status, reason="error")
    return HttpError(resp, b'{"error": {"message": "error"}}')


def make_store(files=None):
    service = MagicMock()
    service.files.return_value.list.return_value.execute.return_value = {"files": files or []}
    service.files.return_value.create.return_value.execute.return_value = {"id": "new"}
    service.files.return_value.update.return_value.execute.return_value = {"id": "existing"}
    return DriveObjectStore(service), service.files.return_value


class FakeDownloader:
    """Writes a fixed payload in one chunk."""

    payload = b""

    def __init__(self, fd, request):
        self.fd = fd

    def next_chunk(self):
        self.fd.write(self.payload)
        return None, True


class TestExecuteWithRetry:
    """Test retry and error translation."""

    def test_success(self):
        request = MagicMock()
        request.execute.return_value = {"id": "1"}

        assert execute_with_retry(request, "find") == {"id": "1"}

    @patch("contact_book.sync.drive.time.sleep")
    def test_retries_server_error(self, sleep):
        request = MagicMock()
        request.execute.side_effect = [http_error(503), http_error(429), {"id": "1"}]

        assert execute_with_retry(request, "upload") == {"id": "1"}
        assert [c.args[0] for c in sleep.call_args_list] == [1, 2]

    @patch("contact_book.sync.drive.time.sleep")
    def test_gives_up_after_retries(self, sleep):
        request = MagicMock()
        request.execute.side_effect = http_error(500)

        with pytest.raises(TransportError) as exc_info:
            execute_with_retry(request, "upload")

        assert request.execute.call_count == 3
        assert exc_info.value.operation == "upload"

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failure_not_retried(self, status):
        request = MagicMock()
        request.execute.side_effect = http_error(status)

        with pytest.raises(AuthError):
            execute_with_retry(request, "upload")

        assert request.execute.call_count == 1

    def test_not_found_passed_through(self):
        request = MagicMock()
        request.execute.side_effect = http_error(404)

        with pytest.raises(HttpError):
            execute_with_retry(request, "download")

    def test_client_error(self):
        request = MagicMock()
        request.execute.side_effect = http_error(400)

        with pytest.raises(TransportError):
            execute_with_retry(request, "upload")

        assert request.execute.call_count == 1

    @patch("contact_book.sync.drive.time.sleep")
    def test_network_error(self, sleep):
        request = MagicMock()
        request.execute.side_effect = ConnectionError("network down")

        with pytest.raises(TransportError):
            execute_with_retry(request, "download")

        assert request.execute.call_count == 3

    @patch("contact_book.sync.drive.time.sleep")
    def test_unresolvable_host(self, sleep):
        request = MagicMock()
        request.execute.side_effect = httplib2.ServerNotFoundError("Unable to find the server at www.googleapis.com")

        with pytest.raises(TransportError) as exc_info:
            execute_with_retry(request, "find")

        assert request.execute.call_count == 3
        assert "Unable to find the server" in exc_info.value.message

    def test_refresh_failure_is_auth_error(self):
        request = MagicMock()
        request.execute.side_effect = RefreshError("invalid_grant")

        with pytest.raises(AuthError):
            execute_with_retry(request, "find")

        assert request.execute.call_count == 1


class TestDriveObjectStore:
    """Test upload/download against a mocked Drive service."""

    def test_find_file_id(self):
        store, files = make_store([{"id": "abc", "name": "contacts.txt"}])

        assert store.find_file_id("contacts.txt") == "abc"

        kwargs = files.list.call_args.kwargs
        assert kwargs["spaces"] == APP_DATA_FOLDER
        assert kwargs["q"] == "name = 'contacts.txt' and trashed = false"

    def test_find_file_id_escapes_quotes(self):
        store, files = make_store()

        assert store.find_file_id("o'brien.txt") is None
        assert "name = 'o\\'brien.txt'" in files.list.call_args.kwargs["q"]

    @patch("contact_book.sync.drive.MediaFileUpload")
    def test_upload_creates(self, media, temp_dir):
        store, files = make_store()
        local = temp_dir / "contacts.txt"
        local.write_text("", encoding="utf-8")

        store.upload(local, "contacts.txt")

        files.create.assert_called_once()
        assert files.create.call_args.kwargs["body"] == {
            "name": "contacts.txt",
            "parents": [APP_DATA_FOLDER],
        }
        files.update.assert_not_called()
        media.assert_called_once_with(str(local), mimetype="text/plain", resumable=False)

    @patch("contact_book.sync.drive.MediaFileUpload")
    def test_upload_overwrites(self, media, temp_dir):
        store, files = make_store([{"id": "abc"}])

        store.upload(temp_dir / "contacts.txt", "contacts.txt")

        assert files.update.call_args.kwargs["fileId"] == "abc"
        files.create.assert_not_called()

    def test_download_missing(self, temp_dir):
        store, _ = make_store()

        with pytest.raises(RemoteObjectNotFound):
            store.download("contacts.txt", temp_dir / "contacts.txt")

    def test_download(self, temp_dir):
        store, files = make_store([{"id": "abc"}])
        local = temp_dir / "sub" / "contacts.txt"

        with patch.object(FakeDownloader, "payload", "[0] [Иван]".encode("utf-8")), \
             patch("contact_book.sync.drive.MediaIoBaseDownload", FakeDownloader):
            store.download("contacts.txt", local)

        files.get_media.assert_called_once_with(fileId="abc")
        assert local.read_text(encoding="utf-8") == "[0] [Иван]"

    def test_failed_download_keeps_local_file(self, temp_dir):
        store, _ = make_store([{"id": "abc"}])
        local = temp_dir / "contacts.txt"
        local.write_text("local", encoding="utf-8")
        downloader = MagicMock()
        downloader.next_chunk.side_effect = http_error(500)

        with patch("contact_book.sync.drive.MediaIoBaseDownload", return_value=downloader):
            with pytest.raises(TransportError):
                store.download("contacts.txt", local)

        assert local.read_text(encoding="utf-8") == "local"

    def test_download_revoked(self, temp_dir):
        store, _ = make_store([{"id": "abc"}])
        downloader = MagicMock()
        downloader.next_chunk.side_effect = http_error(401)

        with patch("contact_book.sync.drive.MediaIoBaseDownload", return_value=downloader):
            with pytest.raises(AuthError):
                store.download("contacts.txt", temp_dir / "contacts.txt")

    @patch("contact_book.sync.drive.time.sleep")
    def test_unreachable_host_on_find(self, sleep, temp_dir):
        store, files = make_store()
        files.list.return_value.execute.side_effect = httplib2.ServerNotFoundError("no route")

        with pytest.raises(TransportError) as exc_info:
            store.download("contacts.txt", temp_dir / "contacts.txt")

        assert exc_info.value.operation == "find"

    def test_network_error_mid_download_keeps_local_file(self, temp_dir):
        store, _ = make_store([{"id": "abc"}])
        local = temp_dir / "contacts.txt"
        local.write_text("local", encoding="utf-8")
        downloader = MagicMock()
        downloader.next_chunk.side_effect = httplib2.ServerNotFoundError("no route")

        with patch("contact_book.sync.drive.MediaIoBaseDownload", return_value=downloader):
            with pytest.raises(TransportError):
                store.download("contacts.txt", local)

        assert local.read_text(encoding="utf-8") == "local"
