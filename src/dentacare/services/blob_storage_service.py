"""
Blob Storage Service.

Local blob storage for patient documents and payment-proof images:
- Async file operations
- SHA-256 content hash recorded with every blob
- Directory structure {base_path}/{clinic_id}/{category}/{blob_id}{ext}
- Mime type detection
- Upload validation (extension allow-list, size limit)
"""
from __future__ import annotations

import hashlib
import logging
import mimetypes
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

import aiofiles

from ..core.exceptions import FileValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlobMetadata:
    """Metadata for a stored blob."""

    blob_id: str
    file_name: str
    file_path: str
    file_uri: str
    file_size: int
    mime_type: str
    content_hash: str
    created_at: datetime


@dataclass(frozen=True)
class UploadResult:
    """Result of a blob upload operation."""

    success: bool
    blob_id: str
    file_path: str
    file_uri: str
    file_size: int
    mime_type: str
    content_hash: str
    error_message: str | None = None


class BlobStorageError(Exception):
    """Base exception for blob storage operations."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


class BlobNotFoundError(BlobStorageError):
    """Blob not found in storage."""

    pass


def validate_upload(
    file_name: str | None,
    file_size: int,
    allowed_extensions: list[str],
    max_bytes: int,
) -> str:
    """Check extension and size of an upload; return the lowercase extension.

    Raises:
        FileValidationError: Missing name, disallowed extension, empty or oversized file
    """
    if not file_name:
        raise FileValidationError(message="File name is required")

    extension = Path(file_name).suffix.lower().lstrip(".")
    if extension not in allowed_extensions:
        raise FileValidationError(
            message=f"File type '.{extension}' is not allowed",
            filename=file_name,
            allowed_types=allowed_extensions,
        )
    if file_size == 0:
        raise FileValidationError(message="File is empty", filename=file_name)
    if file_size > max_bytes:
        raise FileValidationError(
            message=f"File exceeds maximum size of {max_bytes // (1024 * 1024)}MB",
            filename=file_name,
        )
    return extension


class LocalBlobStorageService:
    """
    Local filesystem-based blob storage.

    Blobs are addressed by a storage-relative path, which is what the
    document and payment-proof tables persist. A small ``.meta`` file sits
    next to every blob with its original name and hash.
    """

    DEFAULT_STORAGE_PATH = "blob_storage"

    def __init__(
        self,
        base_path: str | Path | None = None,
        base_url: str = "/api/v1/blobs",
    ):
        self.base_path = Path(base_path) if base_path else Path(self.DEFAULT_STORAGE_PATH)
        self.base_url = base_url.rstrip("/")
        self._ensure_base_directory()

    def _ensure_base_directory(self) -> None:
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.info(f"Blob storage initialized at: {self.base_path.absolute()}")

    def _get_metadata_path(self, blob_path: Path) -> Path:
        return blob_path.with_suffix(blob_path.suffix + ".meta")

    @staticmethod
    def _compute_hash(content: bytes) -> str:
        """Compute SHA-256 hash of content."""
        return hashlib.sha256(content).hexdigest()

    @staticmethod
    def detect_mime_type(file_name: str) -> str:
        """Detect MIME type from filename."""
        mime_type, _ = mimetypes.guess_type(file_name)
        if mime_type:
            return mime_type

        extension = Path(file_name).suffix.lower()
        mime_map = {
            ".pdf": "application/pdf",
            ".jpg": "image/jpeg",
            ".jpeg": "image/jpeg",
            ".png": "image/png",
            ".gif": "image/gif",
            ".webp": "image/webp",
        }
        return mime_map.get(extension, "application/octet-stream")

    @staticmethod
    def _get_extension(file_name: str) -> str:
        ext = Path(file_name).suffix.lower()
        return ext if ext else ".bin"

    def resolve_path(self, relative_path: str) -> Path:
        """Absolute path of a stored blob; rejects paths escaping the storage root."""
        root = self.base_path.resolve()
        candidate = (root / relative_path).resolve()
        if root not in candidate.parents:
            raise BlobNotFoundError(f"Blob not found: {relative_path}")
        return candidate

    async def _write_blob(self, content: bytes, blob_path: Path, metadata: BlobMetadata) -> None:
        blob_path.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(blob_path, "wb") as f:
            await f.write(content)

        metadata_content = (
            f"blob_id={metadata.blob_id}\n"
            f"file_name={metadata.file_name}\n"
            f"file_size={metadata.file_size}\n"
            f"mime_type={metadata.mime_type}\n"
            f"content_hash={metadata.content_hash}\n"
            f"created_at={metadata.created_at.isoformat()}\n"
        )
        async with aiofiles.open(self._get_metadata_path(blob_path), "w") as f:
            await f.write(metadata_content)

    async def upload_from_bytes(
        self,
        content: bytes,
        file_name: str,
        clinic_id: int,
        category: str,
    ) -> UploadResult:
        """
        Store bytes in blob storage.

        Args:
            content: File content as bytes
            file_name: Original filename
            clinic_id: Owning clinic, first path segment
            category: e.g. 'documents', 'payment_proofs'

        Returns:
            UploadResult; success is False when the write failed
        """
        try:
            blob_id = str(uuid.uuid4())
            extension = self._get_extension(file_name)
            relative_path = f"{clinic_id}/{category}/{blob_id}{extension}"
            blob_path = self.base_path / relative_path

            metadata = BlobMetadata(
                blob_id=blob_id,
                file_name=file_name,
                file_path=relative_path,
                file_uri=f"{self.base_url}/{relative_path}",
                file_size=len(content),
                mime_type=self.detect_mime_type(file_name),
                content_hash=self._compute_hash(content),
                created_at=datetime.now(UTC),
            )
            await self._write_blob(content, blob_path, metadata)

            logger.info(f"Blob uploaded: blob_id={blob_id}, size={len(content)} bytes, path={relative_path}")

            return UploadResult(
                success=True,
                blob_id=blob_id,
                file_path=relative_path,
                file_uri=metadata.file_uri,
                file_size=metadata.file_size,
                mime_type=metadata.mime_type,
                content_hash=metadata.content_hash,
            )

        except OSError as e:
            logger.error(f"Error uploading blob: {e}")
            return UploadResult(
                success=False,
                blob_id="",
                file_path="",
                file_uri="",
                file_size=0,
                mime_type="",
                content_hash="",
                error_message=str(e),
            )

    async def get_blob(self, relative_path: str) -> bytes:
        """Read blob content by storage-relative path."""
        blob_path = self.resolve_path(relative_path)
        if not blob_path.is_file():
            raise BlobNotFoundError(f"Blob not found: {relative_path}")

        async with aiofiles.open(blob_path, "rb") as f:
            return await f.read()

    async def delete_blob(self, relative_path: str) -> bool:
        """Delete a blob and its metadata from storage."""
        blob_path = self.resolve_path(relative_path)
        metadata_path = self._get_metadata_path(blob_path)

        deleted = False
        if blob_path.exists():
            blob_path.unlink()
            deleted = True
        if metadata_path.exists():
            metadata_path.unlink()
        return deleted

    def blob_exists(self, relative_path: str) -> bool:
        try:
            return self.resolve_path(relative_path).is_file()
        except BlobNotFoundError:
            return False

    def get_storage_stats(self) -> dict:
        total_size = 0
        total_files = 0

        for path in self.base_path.rglob("*"):
            if path.is_file() and path.suffix != ".meta":
                total_size += path.stat().st_size
                total_files += 1

        return {
            "total_files": total_files,
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "storage_path": str(self.base_path.absolute()),
        }


_blob_storage_instance: LocalBlobStorageService | None = None


def get_blob_storage_service() -> LocalBlobStorageService:
    """Get or create the blob storage service singleton."""
    global _blob_storage_instance

    if _blob_storage_instance is None:
        from ..core.config import get_settings

        settings = get_settings()
        _blob_storage_instance = LocalBlobStorageService(
            base_path=settings.BLOB_STORAGE_PATH,
            base_url=settings.BLOB_BASE_URL,
        )

    return _blob_storage_instance


def reset_blob_storage_service() -> None:
    """Reset the singleton instance (useful for testing)."""
    global _blob_storage_instance
    _blob_storage_instance = None
