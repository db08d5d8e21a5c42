"""Unit tests for the BunnyCDN storage client."""

import hashlib
from unittest.mock import MagicMock, Mock, patch

import httpx
import pytest

from bunnysync.api import BunnyStorageClient, get_base_url
from bunnysync.exceptions import (
    AuthenticationError,
    ChecksumMismatchError,
    ConfigError,
    LocalIOError,
    NotFoundError,
    StorageError,
    StorageNetworkError,
)


def make_response(status_code=200, content=b"", json_data=None):
    """Build a mock httpx response."""
    response = Mock()
    response.status_code = status_code
    response.is_success = 200 <= status_code < 300
    response.content = content
    response.json.return_value = json_data
    return response


@pytest.fixture
def client():
    return BunnyStorageClient("zone", "secret")


@pytest.fixture
def http(client):
    """Patch the underlying httpx client."""
    mock_http = Mock()
    with patch.object(client, "_get_client", return_value=mock_http):
        yield mock_http


class TestBunnyStorageClient:
    """Tests for client initialization."""

    def test_init(self):
        client = BunnyStorageClient("zone", "secret")
        assert client.storage_zone == "zone"
        assert client.access_key == "secret"
        assert client.region == "de"
        assert client.base_url == "https://storage.bunnycdn.com/"

    def test_init_with_region(self):
        client = BunnyStorageClient("zone", "secret", region="NY")
        assert client.base_url == "https://ny.storage.bunnycdn.com/"

    def test_init_without_zone_raises(self):
        with pytest.raises(ConfigError, match="Storage zone"):
            BunnyStorageClient("", "secret")

    def test_init_without_access_key_raises(self):
        with pytest.raises(ConfigError, match="Access key"):
            BunnyStorageClient("zone", "")

    def test_http_client_sends_access_key(self):
        client = BunnyStorageClient("zone", "secret")
        try:
            http_client = client._get_client()
            assert http_client.headers["AccessKey"] == "secret"
            assert str(http_client.base_url) == "https://storage.bunnycdn.com/"
        finally:
            client.close()

    def test_context_manager_closes(self):
        with BunnyStorageClient("zone", "secret") as client:
            client._get_client()
        assert client._client is None


class TestGetBaseUrl:
    def test_default_region(self):
        assert get_base_url(None) == "https://storage.bunnycdn.com/"
        assert get_base_url("de") == "https://storage.bunnycdn.com/"

    def test_other_region(self):
        assert get_base_url("sg") == "https://sg.storage.bunnycdn.com/"


class TestNormalizePath:
    """Tests for path normalization."""

    def test_strips_leading_slash(self, client):
        assert client.normalize_path("/zone/a.txt") == "zone/a.txt"

    def test_directory_gets_trailing_slash(self, client):
        assert client.normalize_path("zone/sub", is_directory=True) == "zone/sub/"

    def test_zone_root_as_directory(self, client):
        assert client.normalize_path("zone", is_directory=True) == "zone/"

    def test_file_with_trailing_slash_rejected(self, client):
        with pytest.raises(StorageError, match="cannot be directory"):
            client.normalize_path("zone/sub/", is_directory=False)

    def test_path_outside_zone_rejected(self, client):
        with pytest.raises(StorageError, match="must begin with /zone/"):
            client.normalize_path("other/a.txt")

    def test_collapses_slashes(self, client):
        assert client.normalize_path("zone//sub\\a.txt") == "zone/sub/a.txt"


class TestListObjects:
    """Tests for directory listing."""

    def test_list_parses_objects(self, client, http):
        http.get.return_value = make_response(
            content=b"[...]",
            json_data=[
                {
                    "Guid": "1",
                    "StorageZoneName": "zone",
                    "Path": "/zone/",
                    "ObjectName": "a.txt",
                    "Length": 5,
                    "IsDirectory": False,
                    "Checksum": "ABC",
                },
                {
                    "Guid": "2",
                    "StorageZoneName": "zone",
                    "Path": "/zone/",
                    "ObjectName": "css",
                    "Length": 0,
                    "IsDirectory": True,
                    "Checksum": None,
                },
            ],
        )

        objects = client.list_objects("zone/")

        http.get.assert_called_once_with("zone/")
        assert len(objects) == 2
        assert objects[0].full_path == "/zone/a.txt"
        assert objects[0].length == 5
        assert objects[0].checksum == "ABC"
        assert objects[1].is_directory is True
        assert objects[1].checksum is None

    def test_list_adds_trailing_slash(self, client, http):
        http.get.return_value = make_response(content=b"[]", json_data=[])
        client.list_objects("zone/sub")
        http.get.assert_called_once_with("zone/sub/")

    def test_empty_body(self, client, http):
        http.get.return_value = make_response(content=b"")
        assert client.list_objects("zone/") == []

    def test_not_found(self, client, http):
        http.get.return_value = make_response(status_code=404)
        with pytest.raises(NotFoundError):
            client.list_objects("zone/missing/")

    def test_unauthorized(self, client, http):
        http.get.return_value = make_response(status_code=401)
        with pytest.raises(AuthenticationError, match="zone"):
            client.list_objects("zone/")

    def test_server_error(self, client, http):
        http.get.return_value = make_response(status_code=500)
        with pytest.raises(StorageError) as exc_info:
            client.list_objects("zone/")
        assert exc_info.value.status_code == 500

    def test_network_error(self, client, http):
        http.get.side_effect = httpx.ConnectError("connection refused")
        with pytest.raises(StorageNetworkError):
            client.list_objects("zone/")


class TestUploadFile:
    """Tests for streamed uploads."""

    def test_upload_sends_checksum_and_streams(self, client, http, tmp_path):
        data = b"a" * (70 * 1024)
        local = tmp_path / "a.bin"
        local.write_bytes(data)
        received = []

        def fake_put(path, content, headers):
            received.append(b"".join(content))
            return make_response(status_code=201)

        http.put.side_effect = fake_put
        progress = Mock()

        client.upload_file(local, "zone/a.bin", progress_callback=progress)

        _, kwargs = http.put.call_args
        headers = kwargs["headers"]
        assert headers["Checksum"] == hashlib.sha256(data).hexdigest().upper()
        assert headers["Content-Length"] == str(len(data))
        assert received == [data]
        # 64 KiB chunks: one full chunk and a remainder
        assert progress.call_count == 2
        progress.assert_called_with(len(data), len(data))

    def test_upload_uses_given_checksum(self, client, http, tmp_path):
        local = tmp_path / "a.txt"
        local.write_bytes(b"abc")
        http.put.return_value = make_response(status_code=201)

        client.upload_file(local, "zone/a.txt", checksum="deadbeef")

        _, kwargs = http.put.call_args
        assert kwargs["headers"]["Checksum"] == "DEADBEEF"

    def test_upload_without_validation(self, client, http, tmp_path):
        local = tmp_path / "a.txt"
        local.write_bytes(b"abc")
        http.put.return_value = make_response(status_code=201)

        client.upload_file(local, "zone/a.txt", validate_checksum=False)

        _, kwargs = http.put.call_args
        assert "Checksum" not in kwargs["headers"]

    def test_checksum_rejected(self, client, http, tmp_path):
        local = tmp_path / "a.txt"
        local.write_bytes(b"abc")
        http.put.return_value = make_response(status_code=400)

        with pytest.raises(ChecksumMismatchError):
            client.upload_file(local, "zone/a.txt")

    def test_missing_local_file(self, client, http, tmp_path):
        with pytest.raises(LocalIOError):
            client.upload_file(tmp_path / "missing.txt", "zone/missing.txt")
        http.put.assert_not_called()

    def test_upload_to_directory_path_rejected(self, client, http, tmp_path):
        local = tmp_path / "a.txt"
        local.write_bytes(b"abc")
        with pytest.raises(StorageError):
            client.upload_file(local, "zone/dir/")


class TestDownloadFile:
    """Tests for streamed downloads."""

    def _stream(self, http, status_code=200, chunks=(), length=None):
        response = Mock()
        response.status_code = status_code
        response.is_success = 200 <= status_code < 300
        total = sum(len(c) for c in chunks) if length is None else length
        response.headers = {"Content-Length": str(total)}
        response.iter_bytes.return_value = iter(chunks)
        stream_cm = MagicMock()
        stream_cm.__enter__.return_value = response
        stream_cm.__exit__.return_value = False
        http.stream.return_value = stream_cm
        return response

    def test_download_writes_file(self, client, http, tmp_path):
        self._stream(http, chunks=[b"hello ", b"world"])
        progress = Mock()
        target = tmp_path / "out.txt"

        result = client.download_file("zone/a.txt", target, progress_callback=progress)

        assert result == target
        assert target.read_bytes() == b"hello world"
        http.stream.assert_called_once_with("GET", "zone/a.txt")
        progress.assert_called_with(11, 11)

    def test_download_not_found(self, client, http, tmp_path):
        self._stream(http, status_code=404)
        with pytest.raises(NotFoundError):
            client.download_file("zone/missing.txt", tmp_path / "out.txt")

    def test_download_unwritable_target(self, client, http, tmp_path):
        self._stream(http, chunks=[b"data"])
        with pytest.raises(LocalIOError):
            client.download_file("zone/a.txt", tmp_path / "missing" / "out.txt")

    def test_interrupted_download_keeps_existing_file(self, client, http, tmp_path):
        target = tmp_path / "out.txt"
        target.write_bytes(b"old valid content")

        def broken_stream():
            yield b"new"
            raise httpx.ReadError("connection reset")

        response = self._stream(http, length=100)
        response.iter_bytes.return_value = broken_stream()

        with pytest.raises(StorageNetworkError):
            client.download_file("zone/a.txt", target)

        assert target.read_bytes() == b"old valid content"
        assert list(tmp_path.iterdir()) == [target]

    def test_download_replaces_existing_file(self, client, http, tmp_path):
        target = tmp_path / "out.txt"
        target.write_bytes(b"old")
        target.chmod(0o640)
        self._stream(http, chunks=[b"new content"])

        client.download_file("zone/a.txt", target)

        assert target.read_bytes() == b"new content"
        assert target.stat().st_mode & 0o777 == 0o640
        assert list(tmp_path.iterdir()) == [target]


class TestDeleteObject:
    """Tests for deletes."""

    def test_delete_success(self, client, http):
        http.delete.return_value = make_response(status_code=200)
        assert client.delete_object("zone/a.txt") is True
        http.delete.assert_called_once_with("zone/a.txt")

    def test_delete_not_found(self, client, http):
        http.delete.return_value = make_response(status_code=404)
        with pytest.raises(NotFoundError):
            client.delete_object("zone/a.txt")

    def test_delete_unauthorized(self, client, http):
        http.delete.return_value = make_response(status_code=401)
        with pytest.raises(AuthenticationError):
            client.delete_object("zone/a.txt")

    def test_delete_other_failure_returns_false(self, client, http):
        http.delete.return_value = make_response(status_code=500)
        assert client.delete_object("zone/a.txt") is False
