"""Metadata extraction utilities for files."""

import hashlib
import mimetypes
import uuid
from pathlib import Path
from typing import BinaryIO, Final

from django.core.exceptions import ValidationError

_CHUNK_SIZE: Final = 8192  # 8KB chunks for checksum calculation
_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_COPY_SUFFIX: Final = ' (Copy)'

# Values match File.FileType
FILE_TYPE_IMAGE: Final = 'image'
FILE_TYPE_PDF: Final = 'pdf'
FILE_TYPE_DOCUMENT: Final = 'document'
FILE_TYPE_OTHER: Final = 'other'


def detect_mime_type(file_obj: BinaryIO, filename: str) -> str:
    """Detect MIME type of an incoming file.

    Prefers the content type reported by the upload (Django's
    ``UploadedFile.content_type``) and falls back to guessing from
    the filename extension.

    Args:
        file_obj: File-like object, optionally with ``content_type``.
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    content_type = getattr(file_obj, 'content_type', None)
    if content_type:
        return content_type

    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


def classify_file_type(mime_type: str) -> str:
    """Map a MIME type to a file category.

    Args:
        mime_type: MIME type string.

    Returns:
        One of 'image', 'pdf', 'document' or 'other'.
    """
    if mime_type.startswith('image/'):
        return FILE_TYPE_IMAGE
    if mime_type == 'application/pdf':
        return FILE_TYPE_PDF
    if 'document' in mime_type or 'text' in mime_type:
        return FILE_TYPE_DOCUMENT
    return FILE_TYPE_OTHER


def calculate_checksum(file_obj: BinaryIO) -> str:
    """Calculate SHA256 checksum of file.

    Reads file in chunks to handle large files efficiently.
    Resets file pointer to beginning after calculation.

    Args:
        file_obj: File-like object to checksum.

    Returns:
        Hex-encoded SHA256 hash string.
    """
    sha256_hash = hashlib.sha256()

    # Reset file pointer to beginning
    file_obj.seek(0)

    # Read in chunks to handle large files
    for chunk in iter(lambda: file_obj.read(_CHUNK_SIZE), b''):
        sha256_hash.update(chunk)

    # Reset file pointer to beginning for subsequent operations
    file_obj.seek(0)

    return sha256_hash.hexdigest()


def get_file_size(file_obj: BinaryIO) -> int:
    """Get file size from file object.

    Args:
        file_obj: File-like object.

    Returns:
        File size in bytes.
    """
    if hasattr(file_obj, 'size'):
        return file_obj.size
    file_size = len(file_obj.read())
    file_obj.seek(0)
    return file_size


def extract_filename(name: str) -> str:
    """Extract filename from a path or client-supplied name.

    Args:
        name: Name, possibly with directories (e.g., 'docs/file.pdf').

    Returns:
        Filename (e.g., 'file.pdf').
    """
    return Path(name).name


def get_file_extension(filename: str) -> str:
    """Get file extension from filename.

    Args:
        filename: Filename (e.g., 'document.pdf').

    Returns:
        Extension without dot, lowercase (e.g., 'pdf').
        Returns empty string if no extension.
    """
    extension = Path(filename).suffix
    return extension.lstrip('.').lower()


def generate_storage_key(user_id: int, filename: str) -> str:
    """Generate a collision-resistant storage key for a new blob.

    Example: (12, 'Report.PDF') -> '12/3f2b...9c.pdf'

    Args:
        user_id: Owner's user ID.
        filename: Original filename, used only for its extension.

    Returns:
        Storage key under the owner's prefix.
    """
    extension = get_file_extension(filename)
    unique = uuid.uuid4().hex
    if extension:
        return f'{user_id}/{unique}.{extension}'
    return f'{user_id}/{unique}'


def build_copy_name(filename: str, max_length: int = 255) -> str:
    """Name for a duplicated file.

    Example: 'report.pdf' -> 'report (Copy).pdf'

    Args:
        filename: Original filename.

    Returns:
        Filename with ' (Copy)' inserted before the extension, the
        stem trimmed so the result fits in ``max_length``.
    """
    path = Path(filename)
    room = max(max_length - len(_COPY_SUFFIX) - len(path.suffix), 1)
    return f'{path.stem[:room]}{_COPY_SUFFIX}{path.suffix}'


def validate_storage_path(user_id: int, storage_path: str) -> None:
    """Validate storage key follows user isolation rules.

    Ensures the key starts with the user's ID to maintain
    multi-user isolation. This is a critical security check.

    Args:
        user_id: Owner's user ID.
        storage_path: Proposed storage key.

    Raises:
        ValidationError: If key doesn't start with user_id or is invalid.
    """
    if not storage_path:
        raise ValidationError('Storage path cannot be empty')

    # Extract first path component
    path_parts = Path(storage_path).parts
    if not path_parts:
        raise ValidationError('Storage path must have at least one component')

    first_component = path_parts[0]

    # Check if first component matches user_id
    try:
        path_user_id = int(first_component)
    except ValueError as error:
        raise ValidationError(
            'Storage path must start with user ID',
        ) from error

    if path_user_id != user_id:
        raise ValidationError(
            f'Storage path user ID ({path_user_id}) does not match '
            f'owner ({user_id})',
        )
