"""Upload validation utilities for postcard submissions

Name sanitizing for safe on-disk storage plus the size, count and content
checks a submission must pass before it reaches the record store.
"""

import re
import unicodedata
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .content_validation import ContentVerdict, validate_content
from .errors import ValidationFailure
from .models import UploadedFile


FALLBACK_FILE_BASE = "datei"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_UNSAFE_EXTENSION_CHARS = re.compile(r"[^a-z0-9]+")
_REPEATED_UNDERSCORES = re.compile(r"_+")


@dataclass(frozen=True)
class UploadLimits:
    """Per-submission limits (defaults mirror config.Settings)"""
    max_images: int = 5
    max_image_size: int = 8 * 1024 * 1024
    max_postcard_size: int = 10 * 1024 * 1024
    max_total_size: int = 30 * 1024 * 1024
    postcard_mime_type: str = "application/pdf"


def sanitize_filename(filename: Optional[str]) -> str:
    """Sanitize a client file name for storage

    Strips directory components and diacritics, replaces every character
    outside [A-Za-z0-9._-] with an underscore, collapses repeated
    underscores and trims separators from the ends. The extension is
    lower-cased. Deterministic, no I/O.

    Example:
        >>> sanitize_filename('Café Malmö (1).PDF')
        'Cafe_Malmo_1.pdf'
        >>> sanitize_filename('../../etc/passwd')
        'passwd'
        >>> sanitize_filename('???')
        'datei'
    """
    name = (filename or "").replace("\\", "/").rsplit("/", 1)[-1]

    decomposed = unicodedata.normalize("NFKD", name)
    cleaned = "".join(c for c in decomposed if not unicodedata.combining(c))

    segments = cleaned.split(".")
    extension = ""
    if len(segments) > 1:
        extension = _UNSAFE_EXTENSION_CHARS.sub("", segments.pop().lower())

    base = ".".join(segments)
    base = _UNSAFE_CHARS.sub("_", base)
    base = _REPEATED_UNDERSCORES.sub("_", base)
    base = base.strip("._-")

    if not base:
        base = FALLBACK_FILE_BASE

    return f"{base}.{extension}" if extension else base


def add_timestamp_suffix(filename: Optional[str], epoch_seconds: int, fallback_base: str) -> str:
    """Sanitize filename and insert a numeric suffix before the extension

    Example:
        >>> add_timestamp_suffix('Karte.pdf', 1740821400, 'Postkarte')
        'Karte_1740821400.pdf'
    """
    sanitized = sanitize_filename(filename or fallback_base)
    base, dot, extension = sanitized.rpartition(".")
    if not dot:
        base, extension = sanitized, ""
    base = base or fallback_base
    suffix = f".{extension}" if extension else ""
    return f"{base}_{epoch_seconds}{suffix}"


def validate_file_size(size_bytes: int, max_size: int) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> validate_file_size(0, 1024)
        (False, 'File is empty (0 bytes)')
    """
    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def _megabytes(size_bytes: int) -> str:
    return f"{size_bytes // (1024 * 1024)} MB"


def validate_postcard(postcard: UploadedFile, limits: UploadLimits) -> None:
    """Check the primary document of a submission

    Raises:
        ValidationFailure: 415 for wrong type or forged content, 400 for size
    """
    if (postcard.mime_type or "").lower() != limits.postcard_mime_type:
        raise ValidationFailure("The postcard must be uploaded as a PDF.", status_code=415)

    is_valid, error = validate_file_size(postcard.size, limits.max_postcard_size)
    if not is_valid:
        if postcard.size == 0:
            raise ValidationFailure(f"Postcard: {error}")
        raise ValidationFailure(f"The PDF may be at most {_megabytes(limits.max_postcard_size)}.")

    if validate_content(postcard.mime_type, postcard.content) != ContentVerdict.DOCUMENT:
        raise ValidationFailure("The PDF file is invalid or damaged.", status_code=415)


def validate_images(images: Sequence[UploadedFile], limits: UploadLimits) -> None:
    """Check count, declared type, size and signature of every image

    Raises:
        ValidationFailure: 400 for count, type or size, 415 for forged content
    """
    if len(images) > limits.max_images:
        raise ValidationFailure(f"At most {limits.max_images} images are allowed.")

    for image in images:
        if not (image.mime_type or "").lower().startswith("image/"):
            raise ValidationFailure("Images must use a valid image format.")

        is_valid, error = validate_file_size(image.size, limits.max_image_size)
        if not is_valid:
            if image.size == 0:
                raise ValidationFailure(f"Image: {error}")
            raise ValidationFailure(f"Each image may be at most {_megabytes(limits.max_image_size)}.")

        if validate_content(image.mime_type, image.content) != ContentVerdict.IMAGE:
            raise ValidationFailure("Image file could not be verified.", status_code=415)


def validate_submission(
    postcard: Optional[UploadedFile],
    images: Sequence[UploadedFile],
    limits: UploadLimits,
) -> None:
    """Run every file check a submission must pass before storage

    Raises:
        ValidationFailure: On the first failed check
    """
    if postcard is None:
        raise ValidationFailure("A PDF file is required.")

    validate_postcard(postcard, limits)
    validate_images(images, limits)

    total_size = postcard.size + sum(image.size for image in images)
    if total_size > limits.max_total_size:
        raise ValidationFailure(
            f"Total upload size of {_megabytes(limits.max_total_size)} exceeded.",
            status_code=413,
        )


def stored_names_for(
    postcard: UploadedFile,
    images: Sequence[UploadedFile],
    epoch_seconds: int,
) -> Tuple[str, List[str]]:
    """Derive unique on-disk names for a submission's files

    The postcard carries epoch_seconds, image i (0-based) carries
    epoch_seconds + i + 1, so names never collide within one entry.
    """
    postcard_name = add_timestamp_suffix(
        postcard.original_name or "Postkarte.pdf", epoch_seconds, "Postkarte"
    )
    image_names = [
        add_timestamp_suffix(
            image.original_name or f"Bild_{index + 1}.jpg",
            epoch_seconds + index + 1,
            f"Bild_{index + 1}",
        )
        for index, image in enumerate(images)
    ]
    return postcard_name, image_names
