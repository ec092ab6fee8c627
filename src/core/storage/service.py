"""Document storage: local folder in development, S3/R2 bucket in production."""

import uuid
from dataclasses import dataclass
from pathlib import Path

from src.core.config import settings
from src.core.exceptions import ValidationError


ALLOWED_CONTENT_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "application/pdf",
    "application/octet-stream",
}


@dataclass(frozen=True)
class StoredDocument:
    """Where an uploaded file ended up."""

    file_name: str
    storage_path: str  # relative path or S3 key
    file_size: int
    content_type: str


async def _upload_to_s3(key: str, content: bytes) -> None:
    """Upload bytes to S3/R2 bucket."""
    import aioboto3

    session = aioboto3.Session()
    async with session.client(
        "s3",
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        region_name=settings.s3_region,
    ) as s3:
        await s3.put_object(
            Bucket=settings.s3_bucket,
            Key=key,
            Body=content,
        )


async def _download_from_s3(key: str) -> bytes:
    """Download object from S3/R2 bucket."""
    import aioboto3

    session = aioboto3.Session()
    async with session.client(
        "s3",
        endpoint_url=settings.s3_endpoint_url,
        aws_access_key_id=settings.s3_access_key,
        aws_secret_access_key=settings.s3_secret_key,
        region_name=settings.s3_region,
    ) as s3:
        response = await s3.get_object(Bucket=settings.s3_bucket, Key=key)
        async with response["Body"] as stream:
            return await stream.read()


async def save_document(
    content: bytes,
    file_name: str,
    content_type: str | None = None,
    folder: str = "payments",
) -> StoredDocument:
    """Persist file bytes and return the retrievable path."""
    if not file_name or not file_name.strip():
        raise ValidationError("File name is required", field="files")

    content_type = content_type or "application/octet-stream"
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationError(
            f"Allowed types: images (JPEG, PNG, GIF, WebP) and PDF. Got: {content_type}",
            field="files",
        )
    if not content:
        raise ValidationError(f"File {file_name} is empty", field="files")
    if len(content) > settings.max_document_size:
        raise ValidationError(
            f"File size must not exceed {settings.max_document_size // (1024 * 1024)} MB",
            field="files",
        )

    # Sanitize filename, keep extension
    base = Path(file_name).stem[:100] or "file"
    ext = Path(file_name).suffix[:20] or ""
    safe_name = f"{base}{ext}".replace("..", "").replace("/", "_")

    unique = uuid.uuid4().hex[:12]
    relative_path = f"{folder}/{unique}_{safe_name}"

    if settings.use_s3:
        await _upload_to_s3(relative_path, content)
    else:
        full_path = Path(settings.storage_path) / relative_path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        full_path.write_bytes(content)

    return StoredDocument(
        file_name=file_name[:255],
        storage_path=relative_path,
        file_size=len(content),
        content_type=content_type,
    )


async def read_document(storage_path: str) -> bytes:
    """Read document bytes from storage (local or S3/R2)."""
    if settings.use_s3:
        return await _download_from_s3(storage_path)
    return (Path(settings.storage_path) / storage_path).read_bytes()
