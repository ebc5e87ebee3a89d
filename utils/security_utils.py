"""
Upload validation (size, type, stored extension) and password strength rules
"""
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional, Tuple
from fastapi import HTTPException, UploadFile


# 50MB in bytes
MAX_FILE_SIZE = 50 * 1024 * 1024


@dataclass(frozen=True)
class UploadCategory:
    """Where a kind of upload is stored and which MIME types it accepts."""
    name: str
    subdir: str
    field: str
    mime_prefixes: Tuple[str, ...]
    mime_exact: Tuple[str, ...]
    rejection: str

    def accepts(self, mime: Optional[str]) -> bool:
        if not mime:
            return False
        mime = mime.lower()
        return mime in self.mime_exact or any(mime.startswith(p) for p in self.mime_prefixes)


PROPERTY_MEDIA = UploadCategory(
    name="property_media",
    subdir="properties",
    field="media",
    mime_prefixes=("image/", "video/"),
    mime_exact=(),
    rejection="Only image and video files are allowed for properties",
)

ID_DOCUMENT = UploadCategory(
    name="id_document",
    subdir="documents",
    field="document",
    mime_prefixes=("image/",),
    mime_exact=("application/pdf",),
    rejection="Only PDF and image files are allowed for documents",
)

PROFILE_IMAGE = UploadCategory(
    name="profile_image",
    subdir="profiles",
    field="image",
    mime_prefixes=("image/",),
    mime_exact=(),
    rejection="Only image files are allowed for profiles",
)


# Extensions carried into stored names; anything else is dropped
SAFE_EXTENSION = re.compile(r"^\.[A-Za-z0-9]{1,10}$")


def safe_extension(filename: str) -> str:
    """
    Lower-cased extension of the client's file name, or "" when it has none
    or it contains anything beyond ASCII letters and digits.

    Only the last path component counts, so directory parts in a hostile
    name never reach the stored name.
    """
    suffix = PurePosixPath(filename.replace("\\", "/")).suffix.lower()
    return suffix if SAFE_EXTENSION.match(suffix) else ""


def detect_mime_type_from_content(content: bytes) -> Optional[str]:
    """
    Detect MIME type from file content using magic bytes.

    Only the formats commonly uploaded as listing media or documents are
    recognised; anything else returns None and the declared type is used.
    """
    if not content:
        return None

    if content[:3] == b'\xff\xd8\xff':
        return "image/jpeg"
    if content[:8] == b'\x89PNG\r\n\x1a\n':
        return "image/png"
    if content[:6] in (b'GIF87a', b'GIF89a'):
        return "image/gif"
    if content[:4] == b'RIFF' and len(content) > 12 and content[8:12] == b'WEBP':
        return "image/webp"
    if content[:5] == b'%PDF-':
        return "application/pdf"
    if len(content) > 12 and content[4:8] == b'ftyp':
        return "video/mp4"
    if content[:4] == b'\x1a\x45\xdf\xa3':
        return "video/webm"
    if content[:2] == b'MZ':
        return "application/x-msdownload"

    return None


def validate_file_content(content: bytes, declared_mime: Optional[str], category: UploadCategory) -> None:
    """
    Validate file size and type for an upload category.

    Raises:
        HTTPException: If validation fails
    """
    if len(content) > MAX_FILE_SIZE:
        max_mb = MAX_FILE_SIZE / (1024 * 1024)
        raise HTTPException(
            status_code=400,
            detail=f"File size exceeds maximum allowed size ({max_mb:.0f}MB)"
        )

    if len(content) == 0:
        raise HTTPException(status_code=400, detail="File is empty")

    if not category.accepts(declared_mime):
        raise HTTPException(status_code=400, detail=category.rejection)

    # The declared type is client-controlled; a recognisable signature must agree with the category
    detected_mime = detect_mime_type_from_content(content)
    if detected_mime and not category.accepts(detected_mime):
        raise HTTPException(status_code=400, detail=category.rejection)


async def validate_uploaded_file(file: UploadFile, category: UploadCategory) -> tuple[str, bytes]:
    """
    Comprehensive validation of uploaded file.

    This function:
    1. Reads at most MAX_FILE_SIZE + 1 bytes
    2. Validates size and MIME type for the category
    3. Keeps the extension of the client's name when it is safe

    Returns:
        Tuple of (extension, file_content); extension may be ""

    Raises:
        HTTPException: If any validation fails
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    content = await file.read(MAX_FILE_SIZE + 1)

    validate_file_content(content, file.content_type, category)

    await file.seek(0)

    return safe_extension(file.filename), content


def validate_password_strength(password: str) -> None:
    """
    Validate password strength according to security requirements.

    Enforces:
    - Minimum length: 12 characters
    - At least one uppercase letter (A-Z)
    - At least one lowercase letter (a-z)
    - At least one digit (0-9)
    - At least one special character (!@#$%^&*(),.?":{}|<>])

    Args:
        password: Password string to validate

    Raises:
        ValueError: If password does not meet strength requirements
    """
    if not password:
        raise ValueError("Password cannot be empty")

    if len(password) < 12:
        raise ValueError("Password must be at least 12 characters long")

    if not re.search(r'[A-Z]', password):
        raise ValueError("Password must contain at least one uppercase letter (A-Z)")

    if not re.search(r'[a-z]', password):
        raise ValueError("Password must contain at least one lowercase letter (a-z)")

    if not re.search(r'[0-9]', password):
        raise ValueError("Password must contain at least one digit (0-9)")

    if not re.search(r'[!@#$%&*(),.?":{}|<>\[\]^]', password):
        raise ValueError("Password must contain at least one special character (!@#$%^&*(),.?\":{}|<>[])")
