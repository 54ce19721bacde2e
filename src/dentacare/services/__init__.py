"""Business logic. Services take an AsyncSession and never commit; endpoints do."""
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .blob_storage_service import LocalBlobStorageService


def get_blob_storage_service() -> "LocalBlobStorageService":
    """Process-wide blob store, imported lazily so endpoint modules stay light."""
    from .blob_storage_service import get_blob_storage_service as _get

    return _get()


__all__ = ["get_blob_storage_service"]
