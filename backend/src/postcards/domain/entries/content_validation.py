"""Content authenticity checks for uploaded bytes

The declared MIME type is never trusted on its own: every upload must also
carry the magic-byte signature of the format it claims to be. Checks are
pure inspection with no side effects.

Document (PDF):
    starts with "%PDF-" and has "%%EOF" within the final 2 KB
Images:
    PNG   89 50 4E 47 0D 0A 1A 0A
    JPEG  FF D8 FF ... FF D9
    GIF   "GIF87a" | "GIF89a"
    WebP  "RIFF" <size> "WEBP"
"""

from enum import Enum
from typing import Callable, Dict


DOCUMENT_MIME_TYPE = "application/pdf"

PDF_MAGIC = b"%PDF-"
PDF_EOF_MARKER = b"%%EOF"
PDF_TRAILER_WINDOW = 2048

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
JPEG_MAGIC = b"\xff\xd8\xff"
JPEG_END_MARKER = b"\xff\xd9"
GIF_MAGIC = (b"GIF87a", b"GIF89a")
WEBP_RIFF = b"RIFF"
WEBP_MARKER = b"WEBP"


class ContentVerdict(str, Enum):
    """Outcome of inspecting an upload"""
    DOCUMENT = "document"
    IMAGE = "image"
    REJECTED = "rejected"


def _as_bytes(raw) -> bytes:
    if isinstance(raw, bytes):
        return raw
    if isinstance(raw, (bytearray, memoryview)):
        return bytes(raw)
    raise TypeError(f"Expected a bytes-like buffer, got {type(raw).__name__}")


def is_pdf(raw: bytes) -> bool:
    """Check PDF header and end-of-file marker

    Example:
        >>> is_pdf(b"%PDF-1.4\\n...\\n%%EOF\\n")
        True
        >>> is_pdf(b"%PDF-1.4\\ntruncated")
        False
    """
    raw = _as_bytes(raw)
    if not raw.startswith(PDF_MAGIC):
        return False
    return PDF_EOF_MARKER in raw[-PDF_TRAILER_WINDOW:]


def looks_like_png(raw: bytes) -> bool:
    return raw.startswith(PNG_MAGIC)


def looks_like_jpeg(raw: bytes) -> bool:
    if len(raw) < 4:
        return False
    return raw.startswith(JPEG_MAGIC) and raw.endswith(JPEG_END_MARKER)


def looks_like_gif(raw: bytes) -> bool:
    return raw.startswith(GIF_MAGIC)


def looks_like_webp(raw: bytes) -> bool:
    if len(raw) < 12:
        return False
    return raw.startswith(WEBP_RIFF) and raw[8:12] == WEBP_MARKER


IMAGE_SIGNATURES: Dict[str, Callable[[bytes], bool]] = {
    "image/png": looks_like_png,
    "image/jpeg": looks_like_jpeg,
    "image/jpg": looks_like_jpeg,
    "image/gif": looks_like_gif,
    "image/webp": looks_like_webp,
}


def is_supported_image(mime_type: str, raw: bytes) -> bool:
    """Check image bytes against the signature of the declared type

    Known types must match their own signature. Any other image/* type
    (including the generic "image/*") is accepted if some known signature
    matches.
    """
    raw = _as_bytes(raw)
    mime_type = (mime_type or "").strip().lower()

    check = IMAGE_SIGNATURES.get(mime_type)
    if check is not None:
        return check(raw)

    if mime_type.startswith("image/"):
        return any(check(raw) for check in (looks_like_png, looks_like_jpeg, looks_like_gif, looks_like_webp))

    return False


def validate_content(declared_mime_type: str, raw: bytes) -> ContentVerdict:
    """Classify an upload by declared type and actual bytes

    Args:
        declared_mime_type: MIME type claimed by the client
        raw: Complete file contents

    Returns:
        ContentVerdict: DOCUMENT, IMAGE or REJECTED

    Raises:
        TypeError: If raw is not a bytes-like buffer
    """
    raw = _as_bytes(raw)
    mime_type = (declared_mime_type or "").strip().lower()

    if mime_type == DOCUMENT_MIME_TYPE:
        return ContentVerdict.DOCUMENT if is_pdf(raw) else ContentVerdict.REJECTED

    if mime_type.startswith("image/"):
        return ContentVerdict.IMAGE if is_supported_image(mime_type, raw) else ContentVerdict.REJECTED

    return ContentVerdict.REJECTED
