"""
Blob storage for captured images.
"""
from __future__ import annotations

import logging
from typing import Optional

from azure.storage.blob import BlobServiceClient, ContainerClient, ContentSettings

from promo_capture.config import settings

logger = logging.getLogger(__name__)


class BlobStore:
    """Object store interface: upload returns a public URL."""

    def upload(self, name: str, data: bytes, content_type: str = "image/png") -> str:
        raise NotImplementedError

    def delete(self, name: str) -> None:
        raise NotImplementedError


class AzureBlobStore(BlobStore):
    def __init__(self, connection_string: str, container_name: str):
        self._connection_string = connection_string
        self._container_name = container_name
        self._container: Optional[ContainerClient] = None

    def _get_container(self) -> ContainerClient:
        if self._container is None:
            service = BlobServiceClient.from_connection_string(self._connection_string)
            self._container = service.get_container_client(self._container_name)
            logger.info("Azure container client initialized: %s", self._container_name)
        return self._container

    def upload(self, name: str, data: bytes, content_type: str = "image/png") -> str:
        container = self._get_container()
        blob = container.upload_blob(
            name,
            data,
            overwrite=True,
            content_settings=ContentSettings(content_type=content_type),
        )
        logger.info("Uploaded blob %s (%d bytes)", name, len(data))
        return blob.url

    def delete(self, name: str) -> None:
        self._get_container().delete_blob(name)
        logger.info("Deleted blob %s", name)


_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    """FastAPI dependency; one Azure client per process."""
    global _store
    if _store is None:
        _store = AzureBlobStore(
            settings.AZURE_STORAGE_CONNECTION_STRING,
            settings.AZURE_CONTAINER_NAME,
        )
    return _store
