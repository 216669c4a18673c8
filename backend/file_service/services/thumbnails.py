"""Thumbnail rendering for image uploads.

Pillow decoding and resizing is CPU-bound, so the async entry point pushes
it onto a worker thread with asyncio.to_thread and the event loop keeps
serving other requests meanwhile.
"""
import asyncio
import io
import os
import tempfile

from PIL import Image, UnidentifiedImageError

THUMBNAIL_SIZE = (200, 200)
THUMBNAIL_QUALITY = 85


class ThumbnailError(Exception):
    """Raised when the payload cannot be decoded or re-encoded as a thumbnail."""
    pass


def render_thumbnail(data: bytes, base_name: str) -> str:
    """Render a JPEG thumbnail of `data` into the temp dir and return its path."""
    output_path = os.path.join(tempfile.gettempdir(), f"{base_name}_thumb.jpg")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.thumbnail(THUMBNAIL_SIZE)
            img.convert("RGB").save(output_path, "JPEG", quality=THUMBNAIL_QUALITY)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ThumbnailError(f"Failed to render thumbnail: {e}") from e
    return output_path


async def generate_thumbnail(data: bytes, base_name: str) -> str:
    """Async wrapper around render_thumbnail that runs it off the event loop."""
    return await asyncio.to_thread(render_thumbnail, data, base_name)
