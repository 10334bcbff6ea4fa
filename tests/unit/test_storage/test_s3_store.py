"""
test_s3_store.py - S3 blob 저장소 테스트 (boto3 client mock)
"""

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.domain.errors import BlobNotFoundError, StoreError
from src.storage.s3 import S3BlobStore, is_retryable_error


def _client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def store(client: MagicMock) -> S3BlobStore:
    return S3BlobStore(bucket="photos", client=client, max_retries=2, initial_delay=0)


class TestS3Get:
    """get 테스트."""

    def test_reads_body(self, store: S3BlobStore, client: MagicMock):
        client.get_object.return_value = {"Body": io.BytesIO(b"jpeg")}

        assert store.get("p/a.jpg") == b"jpeg"
        client.get_object.assert_called_once_with(Bucket="photos", Key="p/a.jpg")

    def test_missing_key(self, store: S3BlobStore, client: MagicMock):
        client.get_object.side_effect = _client_error("NoSuchKey")

        with pytest.raises(BlobNotFoundError):
            store.get("p/a.jpg")

        client.get_object.assert_called_once()  # 재시도 없음

    def test_throttling_retried(self, store: S3BlobStore, client: MagicMock):
        client.get_object.side_effect = [
            _client_error("SlowDown"),
            {"Body": io.BytesIO(b"ok")},
        ]

        assert store.get("p/a.jpg") == b"ok"
        assert client.get_object.call_count == 2

    def test_persistent_5xx_becomes_store_error(self, store: S3BlobStore, client: MagicMock):
        client.get_object.side_effect = _client_error("InternalError")

        with pytest.raises(StoreError):
            store.get("p/a.jpg")

        assert client.get_object.call_count == 3

    def test_access_denied_not_retried(self, store: S3BlobStore, client: MagicMock):
        client.get_object.side_effect = _client_error("AccessDenied")

        with pytest.raises(StoreError):
            store.get("p/a.jpg")

        client.get_object.assert_called_once()


class TestS3Put:
    """put 테스트."""

    def test_bytes_use_put_object(self, store: S3BlobStore, client: MagicMock):
        store.put("k.zip", b"zip", "application/zip")

        client.put_object.assert_called_once_with(
            Bucket="photos", Key="k.zip", Body=b"zip", ContentType="application/zip"
        )

    def test_stream_uses_upload_fileobj_from_start(self, store: S3BlobStore, client: MagicMock):
        body = io.BytesIO(b"zipdata")
        body.read()  # 끝으로 이동

        positions = []
        client.upload_fileobj.side_effect = lambda f, *a, **kw: positions.append(f.tell())

        store.put("k.zip", body, "application/zip")

        assert positions == [0]
        client.upload_fileobj.assert_called_once_with(
            body, "photos", "k.zip", ExtraArgs={"ContentType": "application/zip"}
        )

    def test_upload_failure(self, store: S3BlobStore, client: MagicMock):
        client.put_object.side_effect = _client_error("AccessDenied", "PutObject")

        with pytest.raises(StoreError):
            store.put("k.zip", b"zip", "application/zip")


class TestS3ExistsDelete:
    """exists / delete 테스트."""

    def test_exists_true(self, store: S3BlobStore, client: MagicMock):
        client.head_object.return_value = {}

        assert store.exists("k") is True

    def test_exists_false_on_404(self, store: S3BlobStore, client: MagicMock):
        client.head_object.side_effect = _client_error("404", "HeadObject")

        assert store.exists("k") is False

    def test_exists_access_denied_raises(self, store: S3BlobStore, client: MagicMock):
        """권한 오류는 '없음'이 아니라 StoreError."""
        client.head_object.side_effect = _client_error("AccessDenied", "HeadObject")

        with pytest.raises(StoreError):
            store.exists("k")

        client.head_object.assert_called_once()

    def test_exists_persistent_5xx_raises(self, store: S3BlobStore, client: MagicMock):
        client.head_object.side_effect = _client_error("InternalError", "HeadObject")

        with pytest.raises(StoreError):
            store.exists("k")

        assert client.head_object.call_count == 3

    def test_exists_connection_error_raises(self, store: S3BlobStore, client: MagicMock):
        client.head_object.side_effect = EndpointConnectionError(endpoint_url="https://s3")

        with pytest.raises(StoreError):
            store.exists("k")

    def test_delete(self, store: S3BlobStore, client: MagicMock):
        store.delete("k")

        client.delete_object.assert_called_once_with(Bucket="photos", Key="k")

    def test_delete_failure(self, store: S3BlobStore, client: MagicMock):
        client.delete_object.side_effect = _client_error("AccessDenied", "DeleteObject")

        with pytest.raises(StoreError):
            store.delete("k")


class TestIsRetryableError:
    """is_retryable_error 테스트."""

    def test_connection_error_retryable(self):
        assert is_retryable_error(EndpointConnectionError(endpoint_url="https://s3"))

    def test_not_found_not_retryable(self):
        assert not is_retryable_error(_client_error("NoSuchKey"))

    def test_other_exception_not_retryable(self):
        assert not is_retryable_error(ValueError("x"))
