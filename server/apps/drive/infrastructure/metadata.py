"""Metadata and storage key utilities for files."""

import mimetypes
import re
import uuid
from pathlib import Path, PurePosixPath
from typing import Final

from django.core.exceptions import SuspiciousFileOperation, ValidationError

_DEFAULT_MIME_TYPE: Final = 'application/octet-stream'
_KEY_SEPARATOR: Final = '/'
_FILENAME_MAX_LENGTH: Final = 100
_FALLBACK_FILENAME: Final = 'file'
_NAME_MAX_LENGTH: Final = 255

_INVALID_FILENAME_CHARS: Final = re.compile(r'[\\/:*?"<>|\s]')
_REPEATED_UNDERSCORES: Final = re.compile(r'_{2,}')

# Extension fallbacks used when the MIME type is not specific enough
_EXTENSION_TYPES: Final = {
    'image': frozenset(('jpg', 'jpeg', 'png', 'gif', 'bmp', 'svg', 'webp')),
    'video': frozenset(('mp4', 'avi', 'mov', 'wmv', 'flv', 'webm')),
    'audio': frozenset(('mp3', 'wav', 'ogg', 'flac', 'm4a')),
    'pdf': frozenset(('pdf',)),
    'document': frozenset(('doc', 'docx', 'txt', 'rtf', 'odt')),
    'spreadsheet': frozenset(('xls', 'xlsx', 'csv', 'ods')),
    'presentation': frozenset(('ppt', 'pptx', 'odp')),
    'archive': frozenset(('zip', 'rar', '7z', 'tar', 'gz')),
    'code': frozenset(('html', 'css', 'js', 'ts', 'json', 'xml')),
}

_MIME_TYPES: Final = {
    'application/pdf': 'pdf',
    'application/msword': 'document',
    (
        'application/vnd.openxmlformats-officedocument.'
        'wordprocessingml.document'
    ): 'document',
    'application/vnd.ms-excel': 'spreadsheet',
    (
        'application/vnd.openxmlformats-officedocument.'
        'spreadsheetml.sheet'
    ): 'spreadsheet',
    'application/vnd.ms-powerpoint': 'presentation',
    (
        'application/vnd.openxmlformats-officedocument.'
        'presentationml.presentation'
    ): 'presentation',
}

_MEDIA_TYPES: Final = frozenset(('image', 'video', 'audio'))


def detect_mime_type(filename: str) -> str:
    """Detect MIME type from filename.

    Uses Python's built-in mimetypes module to guess MIME type
    from filename extension.

    Args:
        filename: Filename with extension.

    Returns:
        MIME type string (e.g., 'image/jpeg', 'application/pdf').
        Returns 'application/octet-stream' if type cannot be determined.
    """
    mime_type, _ = mimetypes.guess_type(filename)
    if mime_type is None:
        return _DEFAULT_MIME_TYPE
    return mime_type


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


def get_file_type(mime_type: str, filename: str) -> str:
    """Categorize a file for search and display.

    The MIME type wins when it is specific, otherwise the extension
    decides.

    Args:
        mime_type: Declared MIME type.
        filename: Filename with extension.

    Returns:
        One of image, video, audio, pdf, document, spreadsheet,
        presentation, archive, code or other.
    """
    main_type = mime_type.split('/', 1)[0]
    if main_type in _MEDIA_TYPES:
        return main_type
    if mime_type in _MIME_TYPES:
        return _MIME_TYPES[mime_type]

    extension = get_file_extension(filename)
    for file_type, extensions in _EXTENSION_TYPES.items():
        if extension in extensions:
            return file_type
    return 'other'


def validate_name(name: str) -> str:
    """Validate a user-visible file or folder name.

    Duplicate names inside one folder are allowed.

    Args:
        name: Proposed name.

    Returns:
        Name with surrounding whitespace removed.

    Raises:
        ValidationError: If the name is empty, too long or contains
            a path separator or NUL byte.
    """
    cleaned = name.strip()
    if not cleaned:
        raise ValidationError('Name cannot be empty')
    if len(cleaned) > _NAME_MAX_LENGTH:
        raise ValidationError(
            f'Name cannot be longer than {_NAME_MAX_LENGTH} characters',
        )
    if _KEY_SEPARATOR in cleaned or '\x00' in cleaned:
        raise ValidationError('Name cannot contain "/" or NUL characters')
    return cleaned


def sanitize_filename(filename: str) -> str:
    """Make a filename safe to embed in a storage key.

    Args:
        filename: Original filename (e.g., 'My Report?.pdf').

    Returns:
        Sanitized filename (e.g., 'My_Report_.pdf').
    """
    sanitized = _INVALID_FILENAME_CHARS.sub('_', filename.strip())
    sanitized = _REPEATED_UNDERSCORES.sub('_', sanitized)
    sanitized = sanitized.replace('\x00', '').lstrip('.')
    if len(sanitized) > _FILENAME_MAX_LENGTH:
        # Keep the extension visible
        suffix = Path(sanitized).suffix[:10]
        sanitized = sanitized[:_FILENAME_MAX_LENGTH - len(suffix)] + suffix
    return sanitized or _FALLBACK_FILENAME


def build_storage_key(user_id: int, filename: str) -> str:
    """Build a fresh storage key for an upload.

    Keys are prefixed with the owner's ID, which partitions the backend
    per user without mirroring the folder structure.

    Args:
        user_id: Owner's user ID.
        filename: Original filename.

    Returns:
        Key like '123/3f2a...c1-report.pdf'.
    """
    return '{user_id}/{token}-{filename}'.format(
        user_id=user_id,
        token=uuid.uuid4().hex,
        filename=sanitize_filename(filename),
    )


def validate_storage_key(key: str) -> None:
    """Reject keys that could escape the storage root.

    Args:
        key: Storage key to check.

    Raises:
        SuspiciousFileOperation: If the key is empty, absolute, has
            empty, '.' or '..' segments, or contains NUL or backslash.
    """
    if not key:
        raise SuspiciousFileOperation('Storage key cannot be empty')
    if '\x00' in key or '\\' in key:
        raise SuspiciousFileOperation(
            f'Storage key contains forbidden characters: {key!r}',
        )
    if key.startswith(_KEY_SEPARATOR) or PurePosixPath(key).is_absolute():
        raise SuspiciousFileOperation(f'Storage key must be relative: {key!r}')

    for segment in key.split(_KEY_SEPARATOR):
        if segment in {'', '.', '..'}:
            raise SuspiciousFileOperation(
                f'Storage key has an invalid segment: {key!r}',
            )

