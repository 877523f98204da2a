"""Tests for storage admin actions that must keep the ledger in step."""

import pytest
from django.contrib import admin

from drive.apps.storage.admin import _format_bytes
from drive.apps.storage.logic.folder_operations import create_folder
from drive.apps.storage.models import File, Folder, StorageQuota


@pytest.mark.parametrize(('size', 'expected'), [
    (512, '512 B'),
    (1536, '1.5 KB'),
    (5 * 1024 * 1024, '5.0 MB'),
    (2 * 1024 * 1024 * 1024, '2.0 GB'),
])
def test_format_bytes(size, expected):
    """Test human-readable sizes."""
    assert _format_bytes(size) == expected


@pytest.mark.django_db
def test_folder_admin_delete_cascades(user, mock_s3, make_file, rf):
    """Test deleting a folder in the admin releases contained sizes."""
    StorageQuota.objects.create(user=user, quota_bytes=100, used_bytes=30)
    folder = create_folder(user, 'Docs')
    child = create_folder(user, 'Inner', folder.id)
    make_file(folder=child, size_bytes=30)

    admin.site._registry[Folder].delete_model(rf.post('/'), folder)  # noqa: SLF001

    assert not Folder.objects.exists()
    assert not File.objects.exists()
    assert StorageQuota.objects.get(user=user).used_bytes == 0


@pytest.mark.django_db
def test_file_admin_delete_releases(user, mock_s3, make_file, rf):
    """Test deleting a file in the admin releases its size."""
    StorageQuota.objects.create(user=user, quota_bytes=100, used_bytes=30)
    file_instance = make_file(size_bytes=30)

    admin.site._registry[File].delete_model(  # noqa: SLF001
        rf.post('/'),
        file_instance,
    )

    assert not File.objects.exists()
    assert StorageQuota.objects.get(user=user).used_bytes == 0
