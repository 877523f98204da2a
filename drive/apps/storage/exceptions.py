"""Exceptions for storage app.

Absent and not-owned resources are both reported through the model's
``DoesNotExist`` from owner-scoped lookups; field constraint failures
use Django's ``ValidationError``.
"""

from django.core.exceptions import ObjectDoesNotExist


class QuotaExceededError(Exception):
    """Raised when an operation would exceed user's storage quota."""

    def __init__(
        self,
        quota_bytes: int,
        used_bytes: int,
        required_bytes: int,
    ) -> None:
        """Initialize QuotaExceededError.

        Args:
            quota_bytes: Total quota limit in bytes.
            used_bytes: Currently used bytes.
            required_bytes: Bytes needed for the operation.
        """
        self.quota_bytes = quota_bytes
        self.used_bytes = used_bytes
        self.required_bytes = required_bytes

        available = max(0, quota_bytes - used_bytes)
        super().__init__(
            f'Quota exceeded: need {required_bytes} bytes, '
            f'only {available} bytes available '
            f'(quota: {quota_bytes}, used: {used_bytes})',
        )


class DuplicateNameError(Exception):
    """Raised when a sibling folder with the same name already exists."""

    def __init__(self, name: str, parent_path: str | None) -> None:
        """Initialize DuplicateNameError.

        Args:
            name: Colliding folder name.
            parent_path: Path of the parent folder, None for root.
        """
        self.name = name
        self.parent_path = parent_path

        location = parent_path or 'root'
        super().__init__(
            f'Folder "{name}" already exists in {location}',
        )


class FolderNotEmptyError(Exception):
    """Raised when deleting a non-empty folder without force."""

    def __init__(self, folder_id: int, item_count: int) -> None:
        """Initialize FolderNotEmptyError.

        Args:
            folder_id: ID of the folder that was not deleted.
            item_count: Subfolders, files and notes in its subtree.
        """
        self.folder_id = folder_id
        self.item_count = item_count
        super().__init__(
            f'Folder contains {item_count} items. '
            'Use force=True to delete anyway.',
        )


class ParentFolderNotFoundError(ObjectDoesNotExist):
    """Raised when a parent or target folder does not resolve for the user."""
