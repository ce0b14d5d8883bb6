"""
MinIO client for flow status blobs.

Objects are small UTF-8 JSON documents addressed by name. The bucket is
created the first time the client is used.
"""

from io import BytesIO

from minio import Minio
from minio.deleteobjects import DeleteObject
from minio.error import S3Error

from postmottak.config import settings
from postmottak.core.logging import get_logger

log = get_logger(__name__)


class MinIOClient:
    """Text blob storage in one MinIO bucket."""

    def __init__(
        self,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        bucket: str | None = None,
        secure: bool | None = None,
    ):
        self.endpoint = endpoint or settings.minio_endpoint
        self.access_key = access_key or settings.minio_access_key
        self.secret_key = secret_key or settings.minio_secret_key
        self.bucket = bucket or settings.minio_bucket
        self.secure = settings.minio_secure if secure is None else secure
        self._client: Minio | None = None

    @property
    def enabled(self) -> bool:
        return bool(self.endpoint and self.access_key and self.secret_key)

    def _get_client(self) -> Minio:
        """Connected client with the bucket in place."""
        if self._client is None:
            if not self.enabled:
                raise RuntimeError("MinIO is not configured (MINIO_ENDPOINT, MINIO_ACCESS_KEY, MINIO_SECRET_KEY)")
            client = Minio(
                endpoint=self.endpoint,
                access_key=self.access_key,
                secret_key=self.secret_key,
                secure=self.secure,
            )
            if not client.bucket_exists(bucket_name=self.bucket):
                client.make_bucket(bucket_name=self.bucket)
                log.info("minio_bucket_created", bucket=self.bucket)
            self._client = client
        return self._client

    def upload_text(self, object_name: str, text: str, content_type: str = "application/json") -> None:
        """Write a text object, replacing any existing one."""
        data = text.encode("utf-8")
        self._get_client().put_object(
            bucket_name=self.bucket,
            object_name=object_name,
            data=BytesIO(data),
            length=len(data),
            content_type=content_type,
        )
        log.debug("blob_uploaded", object_name=object_name, size=len(data))

    def download_text(self, object_name: str) -> str | None:
        """Read a text object. None when it does not exist."""
        try:
            response = self._get_client().get_object(bucket_name=self.bucket, object_name=object_name)
        except S3Error as e:
            if e.code == "NoSuchKey":
                return None
            log.error("blob_download_error", object_name=object_name, error=str(e))
            raise

        try:
            return response.read().decode("utf-8")
        finally:
            response.close()
            response.release_conn()

    def list_objects(self, prefix: str, recursive: bool = True) -> list[str]:
        """Object names under a prefix (folders excluded)."""
        objects = self._get_client().list_objects(bucket_name=self.bucket, prefix=prefix, recursive=recursive)
        return [obj.object_name for obj in objects if not obj.is_dir]

    def remove_prefix(self, prefix: str) -> int:
        """Delete every object under a prefix. Returns how many were requested."""
        names = self.list_objects(prefix)
        if not names:
            return 0

        errors = self._get_client().remove_objects(
            bucket_name=self.bucket,
            delete_object_list=[DeleteObject(name) for name in names],
        )
        # remove_objects is lazy, errors only surface while iterating
        failed = [error.name for error in errors]
        if failed:
            log.error("blob_delete_error", prefix=prefix, failed=failed)
            raise RuntimeError(f"Failed to delete {len(failed)} object(s) under {prefix}")

        log.debug("blobs_deleted", prefix=prefix, count=len(names))
        return len(names)
