"""Cloud Storage client wrapper for folder and file operations."""

import logging

from google.api_core.exceptions import NotFound
from google.cloud import storage

from src.config import get_settings

from .exceptions import StorageNotFoundError

logger = logging.getLogger(__name__)


def join_path(*parts: str) -> str:
    """Join folder and file names into a blob path."""
    return "/".join(part.strip("/") for part in parts if part)


class StorageClient:
    """Wrapper for Cloud Storage operations.

    Folders are blob-name prefixes marked by a zero-byte ``<folder>/`` blob.
    """

    _instance: "StorageClient | None" = None
    _client: storage.Client | None = None
    _bucket: storage.Bucket | None = None

    def __new__(cls) -> "StorageClient":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def client(self) -> storage.Client:
        """Get or create Storage client."""
        if self._client is None:
            settings = get_settings()
            project = settings.google_cloud_project if settings.google_cloud_project else None
            self._client = storage.Client(project=project)
        return self._client

    @property
    def bucket(self) -> storage.Bucket:
        """Get or create bucket reference."""
        if self._bucket is None:
            settings = get_settings()
            self._bucket = self.client.bucket(settings.gcs_bucket_name)
        return self._bucket

    def _to_gs_url(self, blob_path: str) -> str:
        return f"gs://{self.bucket.name}/{blob_path}"

    async def folder_exists(self, folder: str) -> bool:
        """Check whether a folder marker or any blob under the folder exists."""
        prefix = join_path(folder) + "/"
        if self.bucket.blob(prefix).exists():
            return True
        blobs = self.client.list_blobs(self.bucket, prefix=prefix, max_results=1)
        return any(True for _ in blobs)

    async def create_folder(self, folder: str) -> str:
        """Create a folder marker blob. Returns the folder URL."""
        prefix = join_path(folder) + "/"
        self.bucket.blob(prefix).upload_from_string(b"", content_type="application/x-directory")
        logger.info(f"Created folder {prefix}")
        return self._to_gs_url(prefix)

    async def ensure_folder(self, folder: str) -> str:
        """Create the folder unless it already exists."""
        if await self.folder_exists(folder):
            return self._to_gs_url(join_path(folder) + "/")
        return await self.create_folder(folder)

    async def file_exists(self, name: str, folder: str = "") -> bool:
        """Check whether a file exists in a folder."""
        return self.bucket.blob(join_path(folder, name)).exists()

    async def upload_file(
        self,
        file_content: bytes,
        name: str,
        folder: str = "",
        content_type: str = "application/octet-stream",
    ) -> str:
        """
        Upload bytes as a named file, overwriting any file of the same name.

        Returns:
            Storage path (gs://bucket/path)
        """
        blob_path = join_path(folder, name)
        blob = self.bucket.blob(blob_path)
        blob.upload_from_string(file_content, content_type=content_type)
        return self._to_gs_url(blob_path)

    async def download_file(self, name: str, folder: str = "") -> bytes:
        """
        Download a named file.

        Raises:
            StorageNotFoundError: If the file does not exist
        """
        blob_path = join_path(folder, name)
        try:
            return self.bucket.blob(blob_path).download_as_bytes()
        except NotFound:
            raise StorageNotFoundError(f"File not found: {self._to_gs_url(blob_path)}")

    async def delete_file(self, name: str, folder: str = "") -> bool:
        """Delete a named file. Returns False when there was nothing to delete."""
        blob_path = join_path(folder, name)
        try:
            self.bucket.blob(blob_path).delete()
        except NotFound:
            return False
        logger.info(f"Deleted {self._to_gs_url(blob_path)}")
        return True


def get_storage_client() -> StorageClient:
    """Get Storage client instance (dependency injection)."""
    return StorageClient()
