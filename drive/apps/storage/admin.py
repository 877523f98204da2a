"""Django admin configuration for storage app.

Deletions of folders and files go through the logic layer so the
quota ledger and stored bytes stay in step with the records.
"""

from django.contrib import admin
from django.db.models import QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from drive.apps.storage.logic.file_operations import delete_file
from drive.apps.storage.logic.folder_operations import delete_folder
from drive.apps.storage.logic.quota_operations import storage_percentage
from drive.apps.storage.models import File, Folder, Note, StorageQuota, Tag


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


def _color_swatch(color: str) -> str:
    if not color:
        return '-'
    return format_html(
        '<span style="background-color: {color}; '
        'padding: 2px 10px; border: 1px solid #ccc;">'
        '&nbsp;</span> {color}',
        color=color,
    )


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin[Folder]):
    """Admin interface for Folder model."""

    list_display = [
        'path',
        'user',
        'item_count',
        'color_display',
        'is_favorite',
        'created_at',
    ]

    list_filter = [
        'is_favorite',
        'user',
    ]

    search_fields = [
        'name',
        'path',
    ]

    # Structure changes must go through folder_operations
    readonly_fields = [
        'user',
        'name',
        'parent',
        'path',
        'item_count',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('Folder', {
            'fields': ('name', 'user', 'parent', 'path'),
        }),
        ('Metadata', {
            'fields': ('description', 'color', 'is_favorite', 'item_count'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
        }),
    )

    def color_display(self, obj: Folder) -> str:
        """Display color swatch with hex code.

        Args:
            obj: Folder instance.

        Returns:
            HTML formatted color swatch and code.
        """
        return _color_swatch(obj.color)
    color_display.short_description = 'Color'  # type: ignore[attr-defined]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Folders are created through the application only."""
        return False

    def delete_model(self, request: HttpRequest, obj: Folder) -> None:
        """Delete the folder with its whole subtree.

        Args:
            request: HTTP request.
            obj: Folder instance.
        """
        delete_folder(obj.user, obj.id, force=True)

    def delete_queryset(
        self,
        request: HttpRequest,
        queryset: QuerySet[Folder],
    ) -> None:
        """Bulk delete, skipping folders already removed with an ancestor.

        Args:
            request: HTTP request.
            queryset: Selected folders.
        """
        for folder in queryset.order_by('path'):
            if Folder.objects.filter(id=folder.id).exists():
                delete_folder(folder.user, folder.id, force=True)

    def get_queryset(self, request: HttpRequest) -> QuerySet[Folder]:
        return super().get_queryset(request).select_related('user')


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model."""

    list_display = [
        'original_name',
        'user',
        'folder',
        'file_type',
        'size_display',
        'download_count',
        'created_at',
    ]

    list_filter = [
        'file_type',
        'created_at',
        'user',
    ]

    search_fields = [
        'original_name',
        'file',  # Searches file.name field
        'checksum_sha256',
    ]

    readonly_fields = [
        'file',
        'user',
        'folder',
        'file_type',
        'mime_type',
        'size_bytes',
        'checksum_sha256',
        'download_count',
        'last_accessed',
        'created_at',
        'updated_at',
    ]

    filter_horizontal = ['tags']  # Better UX for M2M relationship

    fieldsets = (
        ('File Information', {
            'fields': ('original_name', 'file', 'user', 'folder'),
        }),
        ('Metadata', {
            'fields': (
                'file_type',
                'mime_type',
                'size_bytes',
                'checksum_sha256',
                'description',
                'is_favorite',
            ),
        }),
        ('Tags', {
            'fields': ('tags',),
        }),
        ('Access', {
            'fields': ('download_count', 'last_accessed'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at'),
        }),
    )

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format.

        Args:
            obj: File instance.

        Returns:
            Formatted size string (e.g., '1.5 MB', '234 KB').
        """
        return _format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def has_add_permission(self, request: HttpRequest) -> bool:
        """Files are uploaded through the application only."""
        return False

    def delete_model(self, request: HttpRequest, obj: File) -> None:
        """Delete bytes, release quota, then delete the record.

        Args:
            request: HTTP request.
            obj: File instance.
        """
        delete_file(obj.user, obj.id)

    def delete_queryset(
        self,
        request: HttpRequest,
        queryset: QuerySet[File],
    ) -> None:
        """Delete each selected file through the logic layer.

        Args:
            request: HTTP request.
            queryset: Selected files.
        """
        for file_instance in queryset:
            delete_file(file_instance.user, file_instance.id)

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related('user', 'folder')


@admin.register(Note)
class NoteAdmin(admin.ModelAdmin[Note]):
    """Admin interface for Note model."""

    list_display = [
        'title',
        'user',
        'folder',
        'is_pinned',
        'is_favorite',
        'updated_at',
    ]

    list_filter = [
        'is_pinned',
        'is_favorite',
        'user',
    ]

    search_fields = [
        'title',
        'content',
    ]

    readonly_fields = [
        'user',
        'folder',
        'last_accessed',
        'created_at',
        'updated_at',
    ]

    filter_horizontal = ['tags']

    def get_queryset(self, request: HttpRequest) -> QuerySet[Note]:
        return super().get_queryset(request).select_related('user', 'folder')


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin[Tag]):
    """Admin interface for Tag model."""

    list_display = [
        'name',
        'user',
        'color_display',
        'file_count',
        'note_count',
        'created_at',
    ]

    list_filter = [
        'user',
        'created_at',
    ]

    search_fields = [
        'name',
    ]

    readonly_fields = ['created_at']

    def color_display(self, obj: Tag) -> str:
        """Display color swatch with hex code.

        Args:
            obj: Tag instance.

        Returns:
            HTML formatted color swatch and code.
        """
        return _color_swatch(obj.color)
    color_display.short_description = 'Color'  # type: ignore[attr-defined]

    def file_count(self, obj: Tag) -> int:
        """Count of files with this tag."""
        return obj.files.count()
    file_count.short_description = 'Files'  # type: ignore[attr-defined]

    def note_count(self, obj: Tag) -> int:
        """Count of notes with this tag."""
        return obj.notes.count()
    note_count.short_description = 'Notes'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[Tag]:
        return super().get_queryset(request).select_related('user')


@admin.register(StorageQuota)
class StorageQuotaAdmin(admin.ModelAdmin[StorageQuota]):
    """Admin interface for StorageQuota model."""

    list_display = [
        'user',
        'quota_display',
        'used_display',
        'percentage_display',
        'status_display',
    ]

    search_fields = [
        'user__username',
        'user__email',
    ]

    readonly_fields = [
        'user',
        'used_bytes',
    ]

    fieldsets = (
        ('User', {
            'fields': ('user',),
        }),
        ('Quota Settings', {
            'fields': ('quota_bytes',),
        }),
        ('Current Usage', {
            'fields': ('used_bytes',),
        }),
    )

    def quota_display(self, obj: StorageQuota) -> str:
        """Display quota in human-readable format."""
        return _format_bytes(obj.quota_bytes)
    quota_display.short_description = 'Quota'  # type: ignore[attr-defined]

    def used_display(self, obj: StorageQuota) -> str:
        """Display used bytes in human-readable format."""
        return _format_bytes(obj.used_bytes)
    used_display.short_description = 'Used'  # type: ignore[attr-defined]

    def percentage_display(self, obj: StorageQuota) -> str:
        """Display percentage of quota used."""
        return f'{storage_percentage(obj)}%'
    percentage_display.short_description = '%'  # type: ignore[attr-defined]

    def status_display(self, obj: StorageQuota) -> str:
        """Display status indicator based on usage.

        Args:
            obj: StorageQuota instance.

        Returns:
            HTML formatted status indicator.
        """
        percentage = storage_percentage(obj)

        if percentage >= 100:
            color = '#dc3545'  # Red - over quota
            status = 'Over Quota'
        elif percentage >= 90:
            color = '#ffc107'  # Yellow - warning
            status = 'Warning'
        else:
            color = '#28a745'  # Green - ok
            status = 'OK'

        return format_html(
            '<span style="color: {color}; font-weight: bold;">'
            '{status}</span>',
            color=color,
            status=status,
        )
    status_display.short_description = 'Status'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[StorageQuota]:
        return super().get_queryset(request).select_related('user')
