"""Field constraints for storage resources.

Every validator raises Django's ``ValidationError`` so model
``full_clean`` and the logic layer report failures the same way.
"""

import re
from typing import Final

from django.core.exceptions import ValidationError

FOLDER_NAME_MAX_LENGTH: Final = 255
FILE_NAME_MAX_LENGTH: Final = 255
DESCRIPTION_MAX_LENGTH: Final = 500
NOTE_TITLE_MAX_LENGTH: Final = 200
NOTE_CONTENT_MAX_LENGTH: Final = 10000

_PATH_SEPARATOR: Final = '/'
_COLOR_PATTERN: Final = re.compile(r'^#[0-9A-Fa-f]{6}$')


def validate_folder_name(name: str) -> None:
    """Validate a folder name.

    Names become path segments, so they cannot be empty or contain
    the path separator.

    Args:
        name: Proposed folder name (already stripped).

    Raises:
        ValidationError: If the name is empty, too long or has a '/'.
    """
    if not name:
        raise ValidationError('Folder name cannot be empty')

    if len(name) > FOLDER_NAME_MAX_LENGTH:
        raise ValidationError(
            f'Folder name must be at most {FOLDER_NAME_MAX_LENGTH} characters',
        )

    if _PATH_SEPARATOR in name:
        raise ValidationError(
            f'Folder name cannot contain "{_PATH_SEPARATOR}"',
        )


def validate_file_name(name: str) -> None:
    """Validate a file display name.

    Raises:
        ValidationError: If the name is empty or too long.
    """
    if not name:
        raise ValidationError('File name cannot be empty')

    if len(name) > FILE_NAME_MAX_LENGTH:
        raise ValidationError(
            f'File name must be at most {FILE_NAME_MAX_LENGTH} characters',
        )


def validate_description(description: str) -> None:
    """Validate a folder or file description length.

    Raises:
        ValidationError: If the description is too long.
    """
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise ValidationError(
            f'Description must be less than {DESCRIPTION_MAX_LENGTH} characters',
        )


def validate_color(color: str) -> None:
    """Validate a ``#RRGGBB`` hex color.

    Raises:
        ValidationError: If the value is not a hex color.
    """
    if not _COLOR_PATTERN.match(color):
        raise ValidationError(f'Invalid color: {color!r}')


def validate_note_title(title: str) -> None:
    """Validate a note title.

    Raises:
        ValidationError: If the title is empty or too long.
    """
    if not title or len(title) > NOTE_TITLE_MAX_LENGTH:
        raise ValidationError(
            f'Title must be between 1 and {NOTE_TITLE_MAX_LENGTH} characters',
        )


def validate_note_content(content: str) -> None:
    """Validate note content.

    Raises:
        ValidationError: If the content is empty or too long.
    """
    if not content or len(content) > NOTE_CONTENT_MAX_LENGTH:
        raise ValidationError(
            f'Content must be between 1 and {NOTE_CONTENT_MAX_LENGTH} characters',
        )


def clean_name(raw_name: str) -> str:
    """Strip surrounding whitespace and validate as a folder name.

    Args:
        raw_name: Name as supplied by the caller.

    Returns:
        Stripped, valid folder name.
    """
    name = raw_name.strip()
    validate_folder_name(name)
    return name


def parse_tags(raw_tags: str | list[str] | tuple[str, ...]) -> list[str]:
    """Normalize tag input into a list of unique, non-empty names.

    Accepts either a comma-separated string or a sequence of names.

    Args:
        raw_tags: Tag input.

    Returns:
        Tag names in first-seen order.
    """
    if isinstance(raw_tags, str):
        raw_tags = raw_tags.split(',')

    names: list[str] = []
    for raw_tag in raw_tags:
        tag_name = raw_tag.strip()
        if tag_name and tag_name not in names:
            names.append(tag_name)
    return names
