"""Shared fixtures for storage app tests."""

import boto3
import pytest
from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from moto import mock_aws

from drive.apps.storage.models import File, StorageQuota

User = get_user_model()


@pytest.fixture
def user(db):
    """Create test user.

    Returns:
        User instance for testing.
    """
    return User.objects.create_user(
        username='testuser',
        password='testpass123',
        email='test@example.com',
    )


@pytest.fixture
def other_user(db):
    """Create second test user for isolation tests.

    Returns:
        Second user instance.
    """
    return User.objects.create_user(
        username='otheruser',
        password='testpass123',
        email='other@example.com',
    )


@pytest.fixture
def mock_s3():
    """Mock S3 service with the drive bucket.

    Yields:
        boto3 S3 resource with drive bucket created.
    """
    with mock_aws():
        conn = boto3.resource('s3', region_name='us-east-1')
        conn.create_bucket(Bucket='drive')
        yield conn


@pytest.fixture
def sample_file_content():
    """Sample file content for testing.

    Returns:
        ContentFile with test data.
    """
    return ContentFile(b'test file content', name='test.txt')


@pytest.fixture
def small_quota(user):
    """Give the user a 100 byte quota.

    Returns:
        StorageQuota instance.
    """
    return StorageQuota.objects.create(
        user=user,
        quota_bytes=100,
        used_bytes=0,
    )


@pytest.fixture
def make_file(user):
    """Factory for File records without stored bytes.

    Returns:
        Callable creating a File for the test user.
    """
    counter = iter(range(1, 10_000))

    def factory(**kwargs):
        number = next(counter)
        owner = kwargs.pop('user', user)
        defaults = {
            'file': f'{owner.id}/blob-{number}.txt',
            'original_name': f'file-{number}.txt',
            'file_type': File.FileType.DOCUMENT,
            'mime_type': 'text/plain',
            'size_bytes': 10,
            'checksum_sha256': 'a' * 64,
        }
        defaults.update(kwargs)
        return File.objects.create(user=owner, **defaults)

    return factory
