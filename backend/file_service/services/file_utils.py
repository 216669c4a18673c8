"""Small helpers shared by the upload pipeline."""
import hashlib
import os
from typing import Optional


def get_file_extension(filename: str) -> Optional[str]:
    """Return the lowercased extension of `filename`, or None if it has none.

    Dotfiles without a further dot (".bashrc") have no extension. A name
    ending in "." has the empty extension "".
    """
    _, ext = os.path.splitext(filename)
    if not ext:
        return None
    return ext[1:].lower()


def calculate_sha256(data: bytes) -> str:
    """Lowercase hex SHA-256 of `data`."""
    return hashlib.sha256(data).hexdigest()


def is_image_mime_type(mime_type: Optional[str]) -> bool:
    return bool(mime_type) and mime_type.startswith("image/")
