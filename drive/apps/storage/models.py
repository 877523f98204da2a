"""Database models for storage app."""

from pathlib import Path
from typing import Final, final, override

from django.contrib.auth import get_user_model
from django.db import models

from drive.apps.storage.validators import validate_color, validate_folder_name

User = get_user_model()

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_DESCRIPTION_MAX_LENGTH: Final = 500
_MIME_TYPE_MAX_LENGTH: Final = 255
_CHECKSUM_MAX_LENGTH: Final = 64  # SHA256 hex length
_TAG_NAME_MAX_LENGTH: Final = 100
_COLOR_MAX_LENGTH: Final = 7  # Hex color: #RRGGBB
_NOTE_TITLE_MAX_LENGTH: Final = 200
_PATH_MAX_LENGTH: Final = 4096
_FILE_TYPE_MAX_LENGTH: Final = 16

DEFAULT_FOLDER_COLOR: Final = '#3B82F6'
DEFAULT_NOTE_COLOR: Final = '#FEF3C7'

# Default quota: 1 GB in bytes
DEFAULT_QUOTA_BYTES: Final = 1024 * 1024 * 1024


@final
class StorageQuota(models.Model):
    """Storage ledger for a user.

    Tracks the user's storage limit and the bytes consumed by their
    live files. Only file create, delete and duplicate operations
    change ``used_bytes``.
    """

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='storage_quota',
        primary_key=True,
    )

    quota_bytes = models.BigIntegerField(
        default=DEFAULT_QUOTA_BYTES,
        help_text='Storage quota limit in bytes',
    )

    used_bytes = models.BigIntegerField(
        default=0,
        help_text='Currently used storage in bytes',
    )

    class Meta:
        """Model metadata."""

        verbose_name = 'Storage Quota'  # type: ignore[mutable-override]
        verbose_name_plural = 'Storage Quotas'  # type: ignore[mutable-override]

        constraints = [
            models.CheckConstraint(
                condition=models.Q(quota_bytes__gte=0),
                name='storage_quota_bytes_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(used_bytes__gte=0),
                name='storage_used_bytes_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}: {self.used_bytes}/{self.quota_bytes}'

    def has_space_for(self, size_bytes: int) -> bool:
        """Check if there's enough space for the given size.

        Args:
            size_bytes: Size to check in bytes.

        Returns:
            True if there's enough space, False otherwise.
        """
        return self.used_bytes + size_bytes <= self.quota_bytes

    def available_bytes(self) -> int:
        """Get available storage space.

        Returns:
            Available bytes (never negative).
        """
        available = self.quota_bytes - self.used_bytes
        return max(0, available)


@final
class Tag(models.Model):
    """User-defined tag for organizing files and notes.

    Tags are scoped to individual users to prevent naming conflicts
    and maintain user isolation.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='tags',
        db_index=True,
    )

    name = models.CharField(
        max_length=_TAG_NAME_MAX_LENGTH,
    )

    color = models.CharField(
        max_length=_COLOR_MAX_LENGTH,
        blank=True,
        default='',
        help_text='Hex color code for UI display (e.g., #FF5733)',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Tag'  # type: ignore[mutable-override]
        verbose_name_plural = 'Tags'  # type: ignore[mutable-override]
        ordering = ['name']

        constraints = [
            # Ensure tag names are unique per user
            models.UniqueConstraint(
                fields=['user', 'name'],
                name='tags_user_name_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.name}'


@final
class Folder(models.Model):
    """Folder in a user's tree.

    ``parent`` links form a tree rooted at ``None``. ``path`` is the
    materialized ``/``-joined chain of ancestor names ending in
    ``name`` and is rewritten whenever an ancestor is renamed or moved.
    """

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='folders',
        db_index=True,
    )

    name = models.CharField(
        max_length=_NAME_MAX_LENGTH,
        validators=[validate_folder_name],
    )

    description = models.CharField(
        max_length=_DESCRIPTION_MAX_LENGTH,
        blank=True,
        default='',
    )

    # Contents are removed by the cascade in folder_operations
    parent = models.ForeignKey(
        'self',
        on_delete=models.RESTRICT,
        related_name='subfolders',
        null=True,
        blank=True,
    )

    path = models.CharField(
        max_length=_PATH_MAX_LENGTH,
        help_text='Materialized path: parent.path/name, or name at root',
    )

    is_favorite = models.BooleanField(default=False)

    color = models.CharField(
        max_length=_COLOR_MAX_LENGTH,
        default=DEFAULT_FOLDER_COLOR,
        validators=[validate_color],
    )

    item_count = models.PositiveIntegerField(
        default=0,
        help_text='Direct subfolders, files and notes',
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        indexes = [
            models.Index(
                fields=['user', 'parent'],
                name='folders_user_parent_idx',
            ),
            models.Index(
                fields=['user', 'path'],
                name='folders_user_path_idx',
            ),
        ]

        constraints = [
            # Sibling names are unique per owner
            models.UniqueConstraint(
                fields=['user', 'parent', 'name'],
                name='folders_user_parent_name_unique',
            ),
            # NULL parents never collide, so roots need their own rule
            models.UniqueConstraint(
                fields=['user', 'name'],
                condition=models.Q(parent__isnull=True),
                name='folders_user_root_name_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.path}'

    def build_child_path(self, child_name: str) -> str:
        """Path of a direct child named ``child_name``.

        Args:
            child_name: Name of the child folder.

        Returns:
            Materialized path for the child.
        """
        return f'{self.path}/{child_name}'


@final
class File(models.Model):
    """File stored in S3-compatible storage.

    The blob key follows the pattern ``{user_id}/{unique}.ext``; the
    user-facing name lives in ``original_name`` and the position in
    the tree in ``folder`` (``None`` means root).
    """

    class FileType(models.TextChoices):
        """Coarse file category derived from the MIME type."""

        IMAGE = 'image', 'Image'
        PDF = 'pdf', 'PDF'
        DOCUMENT = 'document', 'Document'
        OTHER = 'other', 'Other'

    # Owner relationship
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='files',
        db_index=True,
    )

    # upload_to='' means we control the full key
    file = models.FileField(
        upload_to='',
        max_length=_NAME_MAX_LENGTH,
        help_text='Key in storage: {user_id}/{unique}.ext',
    )

    original_name = models.CharField(
        max_length=_NAME_MAX_LENGTH,
    )

    file_type = models.CharField(
        max_length=_FILE_TYPE_MAX_LENGTH,
        choices=FileType.choices,
        default=FileType.OTHER,
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
    )

    size_bytes = models.BigIntegerField(
        help_text='File size in bytes',
    )

    checksum_sha256 = models.CharField(
        max_length=_CHECKSUM_MAX_LENGTH,
        help_text='SHA256 hash for integrity verification',
        db_index=True,
    )

    # Contents are removed by the cascade in folder_operations
    folder = models.ForeignKey(
        Folder,
        on_delete=models.RESTRICT,
        related_name='files',
        null=True,
        blank=True,
    )

    is_favorite = models.BooleanField(default=False)

    description = models.CharField(
        max_length=_DESCRIPTION_MAX_LENGTH,
        blank=True,
        default='',
    )

    tags = models.ManyToManyField(
        Tag,
        related_name='files',
        blank=True,
    )

    download_count = models.PositiveIntegerField(default=0)
    last_accessed = models.DateTimeField(auto_now_add=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering = ['-created_at']

        indexes = [
            models.Index(
                fields=['user', 'file_type'],
                name='files_user_type_idx',
            ),
            models.Index(
                fields=['user', 'folder'],
                name='files_user_folder_idx',
            ),
            models.Index(
                fields=['user', 'is_favorite'],
                name='files_user_favorite_idx',
            ),
        ]

        constraints = [
            models.UniqueConstraint(
                fields=['file'],
                name='files_storage_key_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.original_name}'

    def get_extension(self) -> str:
        """Extract file extension from the original name.

        Example: 'report.PDF' -> 'pdf'

        Returns:
            Extension without dot (lowercase).
        """
        extension = Path(self.original_name).suffix
        return extension.lstrip('.').lower()


@final
class Note(models.Model):
    """Text note. Notes are not charged against the storage quota."""

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notes',
        db_index=True,
    )

    title = models.CharField(max_length=_NOTE_TITLE_MAX_LENGTH)
    content = models.TextField()

    # Contents are removed by the cascade in folder_operations
    folder = models.ForeignKey(
        Folder,
        on_delete=models.RESTRICT,
        related_name='notes',
        null=True,
        blank=True,
    )

    is_favorite = models.BooleanField(default=False)
    is_pinned = models.BooleanField(default=False)

    tags = models.ManyToManyField(
        Tag,
        related_name='notes',
        blank=True,
    )

    color = models.CharField(
        max_length=_COLOR_MAX_LENGTH,
        default=DEFAULT_NOTE_COLOR,
        validators=[validate_color],
    )

    last_accessed = models.DateTimeField(auto_now_add=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Note'  # type: ignore[mutable-override]
        verbose_name_plural = 'Notes'  # type: ignore[mutable-override]
        ordering = ['-is_pinned', '-updated_at']

        indexes = [
            models.Index(
                fields=['user', 'folder'],
                name='notes_user_folder_idx',
            ),
            models.Index(
                fields=['user', '-is_pinned', '-updated_at'],
                name='notes_user_pinned_idx',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.user.username}:{self.title}'

    def preview(self, length: int = 100) -> str:
        """Leading part of the content, with an ellipsis when cut."""
        if len(self.content) > length:
            return f'{self.content[:length]}...'
        return self.content

    def word_count(self) -> int:
        """Number of whitespace-separated words in the content."""
        return len(self.content.split())
