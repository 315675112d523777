"""
MinIO storage utilities for order files.
Provides presigned URL generation and object management.
"""
import io
import secrets
import time
from datetime import timedelta
from django.conf import settings
from minio import Minio
from minio.deleteobjects import DeleteObject
from minio.error import S3Error

UPLOAD_URL_EXPIRES = timedelta(seconds=300)
DOWNLOAD_URL_EXPIRES = timedelta(seconds=3600)


class StorageError(Exception):
    """Raised when an object storage operation fails."""
    pass


def get_minio_client():
    """Get configured MinIO client instance."""
    return Minio(
        settings.MINIO_ENDPOINT,
        access_key=settings.MINIO_ACCESS_KEY,
        secret_key=settings.MINIO_SECRET_KEY,
        secure=settings.MINIO_USE_SSL,
        region=settings.MINIO_REGION,
    )


def order_prefix(order_id) -> str:
    return f"orders/{order_id}/"


def generate_storage_key(order_id, category: str, extension: str) -> str:
    """
    Unique key: orders/{order_id}/{category}/{timestamp_ms}-{16 hex}.{ext}
    """
    timestamp = int(time.time() * 1000)
    suffix = secrets.token_hex(8)
    return f"{order_prefix(order_id)}{category}/{timestamp}-{suffix}.{extension}"


def thumbnail_key_for(storage_key: str) -> str:
    """scan.jpg -> scan-thumb.webp (extension replaced)."""
    base = storage_key.rsplit('.', 1)[0] if '.' in storage_key.rsplit('/', 1)[-1] else storage_key
    return f"{base}-thumb.webp"


def public_url(object_key: str) -> str:
    """Unsigned URL, only useful when the bucket is publicly readable."""
    return f"{settings.MINIO_PUBLIC_URL.rstrip('/')}/{settings.MINIO_ORDERS_BUCKET}/{object_key}"


def generate_presigned_put_url(object_key: str, expires: timedelta = UPLOAD_URL_EXPIRES) -> str:
    """
    Presigned PUT URL for uploading a file straight to MinIO.

    Raises:
        StorageError: If MinIO operation fails
    """
    client = get_minio_client()
    try:
        return client.presigned_put_object(
            bucket_name=settings.MINIO_ORDERS_BUCKET,
            object_name=object_key,
            expires=expires
        )
    except S3Error as e:
        raise StorageError(f"Failed to generate presigned PUT URL: {e}") from e


def generate_presigned_get_url(object_key: str, expires: timedelta = DOWNLOAD_URL_EXPIRES) -> str:
    """
    Presigned GET URL for downloading/viewing a file.

    Raises:
        StorageError: If MinIO operation fails
    """
    client = get_minio_client()
    try:
        return client.presigned_get_object(
            bucket_name=settings.MINIO_ORDERS_BUCKET,
            object_name=object_key,
            expires=expires
        )
    except S3Error as e:
        raise StorageError(f"Failed to generate presigned GET URL: {e}") from e


def download_object(object_key: str) -> bytes:
    client = get_minio_client()
    response = None
    try:
        response = client.get_object(settings.MINIO_ORDERS_BUCKET, object_key)
        return response.read()
    except S3Error as e:
        raise StorageError(f"Failed to download object: {e}") from e
    finally:
        if response is not None:
            response.close()
            response.release_conn()


def upload_bytes(object_key: str, data: bytes, content_type: str) -> None:
    client = get_minio_client()
    try:
        client.put_object(
            settings.MINIO_ORDERS_BUCKET,
            object_key,
            io.BytesIO(data),
            length=len(data),
            content_type=content_type,
        )
    except S3Error as e:
        raise StorageError(f"Failed to upload object: {e}") from e


def delete_object(object_key: str) -> None:
    """
    Delete an object from MinIO storage (hard delete).

    Raises:
        StorageError: If MinIO operation fails
    """
    client = get_minio_client()
    try:
        client.remove_object(bucket_name=settings.MINIO_ORDERS_BUCKET, object_name=object_key)
    except S3Error as e:
        raise StorageError(f"Failed to delete object from MinIO: {e}") from e


def delete_objects(object_keys) -> dict:
    """
    Batch delete.

    Returns:
        {object_key: error message} for every key that failed
    """
    keys = [key for key in object_keys if key]
    if not keys:
        return {}
    client = get_minio_client()
    failed = {}
    try:
        errors = client.remove_objects(
            settings.MINIO_ORDERS_BUCKET,
            [DeleteObject(key) for key in keys],
        )
        # remove_objects is lazy; iterating performs the deletion
        for error in errors:
            failed[error.name] = error.message
    except S3Error as e:
        return {key: str(e) for key in keys}
    return failed
