"""
AWS S3 blob 저장소 구현.

- 일시적 실패(throttling, 5xx, 연결 오류)는 지수 백오프로 재시도
- NoSuchKey/404 → BlobNotFoundError (재시도 없음)
- 파일 객체 업로드는 upload_fileobj (멀티파트 자동 처리)
"""

import logging
from typing import Any, BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from src.domain.errors import BlobNotFoundError, StoreError
from src.utils.retry import retry_with_exponential_backoff

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = frozenset({"NoSuchKey", "NotFound", "404"})

RETRYABLE_CODES = frozenset({
    "Throttling",
    "ThrottlingException",
    "SlowDown",
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "InternalError",
    "ServiceUnavailable",
    "500",
    "503",
})


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))


def is_retryable_error(error: Exception) -> bool:
    """재시도할 가치가 있는 S3 오류인지."""
    if isinstance(error, ClientError):
        return _error_code(error) in RETRYABLE_CODES
    # 연결 끊김, 읽기 timeout 등
    return isinstance(error, BotoCoreError)


class S3BlobStore:
    """
    S3 버킷 기반 blob 저장소.

    Example:
        >>> store = S3BlobStore(bucket="photo-bucket", region="us-east-1")
        >>> data = store.get("projects/trip/IMG_0001.jpg")
    """

    def __init__(
        self,
        bucket: str,
        region: str | None = None,
        client: Any = None,
        max_retries: int = 3,
        initial_delay: float = 0.1,
    ):
        self.bucket = bucket
        self.client = client or boto3.client("s3", region_name=region)
        self.max_retries = max_retries
        self.initial_delay = initial_delay

        logger.info(f"Using S3 bucket: {bucket}")

    def _call(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        return retry_with_exponential_backoff(
            func,
            *args,
            max_retries=self.max_retries,
            initial_delay=self.initial_delay,
            exceptions=(ClientError, BotoCoreError),
            should_retry=is_retryable_error,
            **kwargs,
        )

    def get(self, key: str) -> bytes:
        def fetch() -> bytes:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            return response["Body"].read()

        try:
            return self._call(fetch)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                raise BlobNotFoundError(key) from e
            raise StoreError(f"Failed to download s3://{self.bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to download s3://{self.bucket}/{key}: {e}") from e

    def put(self, key: str, body: bytes | BinaryIO, content_type: str) -> None:
        def upload() -> None:
            if isinstance(body, bytes | bytearray):
                self.client.put_object(
                    Bucket=self.bucket,
                    Key=key,
                    Body=bytes(body),
                    ContentType=content_type,
                )
            else:
                body.seek(0)  # 재시도 시 처음부터
                self.client.upload_fileobj(
                    body,
                    self.bucket,
                    key,
                    ExtraArgs={"ContentType": content_type},
                )

        try:
            self._call(upload)
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to upload s3://{self.bucket}/{key}: {e}") from e

    def exists(self, key: str) -> bool:
        try:
            self._call(self.client.head_object, Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _error_code(e) in NOT_FOUND_CODES:
                return False
            raise StoreError(f"Failed to check s3://{self.bucket}/{key}: {e}") from e
        except BotoCoreError as e:
            raise StoreError(f"Failed to check s3://{self.bucket}/{key}: {e}") from e
        return True

    def delete(self, key: str) -> None:
        try:
            self._call(self.client.delete_object, Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise StoreError(f"Failed to delete s3://{self.bucket}/{key}: {e}") from e
