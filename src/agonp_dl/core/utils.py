"""Validation and normalisation helpers shared by the site components."""

import re
from typing import Union

from ..errors import ValidationError
from .model import MediaFormat

_POSITIVE_ID_RE = re.compile(r"[1-9]\d*")

# Invalid chars for Windows: < > : " / \ | ? *
_INVALID_FILENAME_CHARS_RE = re.compile(r'[<>:"/\\|?*\x00-\x1f]')


def ensure_positive_id(name: str, value: Union[str, int, None]) -> str:
    """Return ``value`` as a decimal string or raise ValidationError.

    Args:
        name: Parameter name used in the error message
        value: Candidate identifier, e.g. ``"22"`` or ``22``

    Raises:
        ValidationError: If the value is not a positive integer without
            leading zeros.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{name} must be positive number, given: {value}")

    text = str(value)
    if not _POSITIVE_ID_RE.fullmatch(text):
        raise ValidationError(f"{name} must be positive number, given: {value}")
    return text


def normalize_media_format(media_format: Union[str, MediaFormat, None]) -> MediaFormat:
    """Only an exact ``"mp3"`` survives; anything else becomes mp4."""
    if media_format == MediaFormat.MP3:
        return MediaFormat.MP3
    return MediaFormat.MP4


def sanitize_filename(name: str) -> str:
    """Remove or replace characters that are invalid in filenames."""
    sanitized = _INVALID_FILENAME_CHARS_RE.sub(" ", name)
    sanitized = sanitized.strip().rstrip(".")
    return sanitized or "untitled"
