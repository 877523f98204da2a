"""Custom storage backend for S3-compatible storage."""

import logging
from typing import Any, final, override

from django.core.files.storage import default_storage
from storages.backends.s3 import S3Storage

logger = logging.getLogger(__name__)


@final
class FileStorage(S3Storage):
    """S3 storage backend for user file bytes.

    Extends django-storages S3Storage with:
    - Best-effort removal for rollback and delete paths
    - Server-side copy for duplicated files
    - Enhanced error logging
    """

    @override
    def save(  # noqa: WPS211
        self,
        name: str,
        content: Any,
        max_length: int | None = None,
    ) -> str:
        """Save file to S3 with error handling and logging.

        Args:
            name: Storage key for the file.
            content: File content (file-like object).
            max_length: Optional maximum length for the filename.

        Returns:
            Actual storage key used (may differ from name if conflicts).

        Raises:
            Exception: If S3 upload fails.
        """
        try:
            logger.info('Uploading file to storage: %s', name)
            saved_name = super().save(name, content, max_length)
            logger.info('Successfully uploaded file: %s', saved_name)
        except Exception:
            logger.exception('Failed to upload file to storage: %s', name)
            raise
        else:
            return saved_name

    @override
    def delete(self, name: str) -> None:
        """Delete file from S3 with error handling and logging.

        Args:
            name: Storage key of file to delete.

        Raises:
            Exception: If S3 delete fails.
        """
        try:
            logger.info('Deleting file from storage: %s', name)
            super().delete(name)
            logger.info('Successfully deleted file: %s', name)
        except Exception:
            logger.exception('Failed to delete file from storage: %s', name)
            raise

    def discard(self, name: str) -> bool:
        """Remove stored bytes without raising.

        Used on delete and rollback paths where the desired end state
        is "no accessible bytes". A missing object already satisfies
        that, so it is logged and not retried.

        Args:
            name: Storage key of file to remove.

        Returns:
            True if the object existed and was deleted, False otherwise.
        """
        try:
            if not self.exists(name):
                logger.warning(
                    'File not found in storage (already deleted?): %s',
                    name,
                )
                return False
            self.delete(name)
        except Exception:
            # The record side carries on; a cleanup job can find the orphan
            logger.exception('Failed to discard file, orphaned: %s', name)
            return False
        return True

    def rollback_upload(self, name: str) -> None:
        """Delete uploaded file for DB transaction rollback.

        This method is called when a database transaction or a quota
        reservation fails after a file has been written to S3.

        Args:
            name: Storage key of file to delete.
        """
        logger.warning('Rolling back upload, deleting file: %s', name)
        if self.discard(name):
            logger.info('Successfully rolled back file upload: %s', name)

    def copy_object(self, source: str, destination: str) -> str:
        """Copy an object to a new key with a server-side copy.

        Args:
            source: Source storage key.
            destination: Destination storage key.

        Returns:
            The destination key.

        Raises:
            Exception: If the copy fails.
        """
        try:
            logger.info('Copying file: %s -> %s', source, destination)
            copy_source = {
                'Bucket': self.bucket_name,
                'Key': source,
            }
            self.bucket.copy(copy_source, destination)
            logger.info('Copied file: %s -> %s', source, destination)
        except Exception:
            logger.exception('Copy failed: %s -> %s', source, destination)
            raise
        return destination


def get_blob_storage() -> FileStorage:
    """Get the configured default storage backend.

    Returns:
        FileStorage instance with proper S3 configuration.
    """
    return default_storage  # type: ignore[return-value]
