"""Streamed multipart/form-data reader for the upload endpoint.

The body is fed chunk by chunk into python-multipart's push parser instead of
letting Starlette spool the whole form first. The `file` part is buffered in
memory and the read is abandoned as soon as that part grows past the
configured maximum, so an oversize upload is never held in full.

Recognized fields:
    file      binary payload; its part headers give filename and MIME type
    filename  optional custom display name (UTF-8 text, empty means absent,
              at most MAX_CUSTOM_FILENAME_BYTES)

Everything else is parsed and discarded.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import ClientDisconnect, Request

from file_service.errors import BadRequest, FileProcessingError, MultipartError, PayloadTooLarge

logger = logging.getLogger(__name__)

FILE_FIELD = "file"
FILENAME_FIELD = "filename"

# The `filename` column holds 255 characters and "{uuid}_" takes 37 of them
MAX_CUSTOM_FILENAME_BYTES = 255 - 37


@dataclass
class UploadForm:
    file_data: Optional[bytes] = None
    original_filename: Optional[str] = None
    mime_type: Optional[str] = None
    custom_filename: Optional[str] = None

    @property
    def file_size(self) -> int:
        return len(self.file_data) if self.file_data is not None else 0


class _FormCollector:
    """python-multipart callbacks that fill an UploadForm."""

    def __init__(self):
        self.form = UploadForm()
        self.finished = False
        # Bytes received so far for the `file` part being parsed
        self.file_bytes_read = 0
        self.custom_filename_too_long = False
        self._reset_part()

    def _reset_part(self):
        self._header_field = b""
        self._header_value = b""
        self._headers: dict[bytes, bytes] = {}
        self._name = ""
        self._filename: Optional[str] = None
        self._content_type: Optional[str] = None
        self._chunks: list[bytes] = []

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_end": self.on_end,
        }

    def on_part_begin(self):
        self._reset_part()
        self.file_bytes_read = 0

    def on_header_field(self, data: bytes, start: int, end: int):
        self._header_field += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int):
        self._header_value += data[start:end]

    def on_header_end(self):
        self._headers[self._header_field.lower()] = self._header_value
        self._header_field = b""
        self._header_value = b""

    def on_headers_finished(self):
        _, options = parse_options_header(self._headers.get(b"content-disposition", b""))
        name = options.get(b"name")
        filename = options.get(b"filename")
        content_type = self._headers.get(b"content-type")
        self._name = name.decode("utf-8", errors="replace") if name is not None else ""
        self._filename = filename.decode("utf-8", errors="replace") if filename is not None else None
        self._content_type = content_type.decode("latin-1").strip() if content_type else None

    def on_part_data(self, data: bytes, start: int, end: int):
        if self._name not in (FILE_FIELD, FILENAME_FIELD):
            return
        chunk = data[start:end]
        if self._name == FILE_FIELD:
            self.file_bytes_read += len(chunk)
        elif sum(map(len, self._chunks)) + len(chunk) > MAX_CUSTOM_FILENAME_BYTES:
            self.custom_filename_too_long = True
            return
        self._chunks.append(chunk)

    def on_part_end(self):
        body = b"".join(self._chunks)
        if self._name == FILE_FIELD:
            self.form.file_data = body
            self.form.original_filename = self._filename
            self.form.mime_type = self._content_type or None
        elif self._name == FILENAME_FIELD:
            try:
                text = body.decode("utf-8")
            except UnicodeDecodeError:
                text = ""
            if text:
                self.form.custom_filename = text
        self._chunks = []

    def on_end(self):
        self.finished = True


async def read_upload_form(request: Request, max_file_size: int) -> UploadForm:
    """Parse the request body into an UploadForm.

    Raises:
        MultipartError: not multipart/form-data, malformed, or truncated body.
        PayloadTooLarge: the `file` part exceeds `max_file_size` bytes.
        BadRequest: the `filename` part exceeds MAX_CUSTOM_FILENAME_BYTES.
        FileProcessingError: the body could not be read from the client.
    """
    content_type, params = parse_options_header(request.headers.get("content-type", ""))
    boundary = params.get(b"boundary")
    if content_type != b"multipart/form-data" or not boundary:
        raise MultipartError(
            "Failed to parse multipart form: expected multipart/form-data with a boundary"
        )

    collector = _FormCollector()
    parser = MultipartParser(boundary, collector.callbacks())
    try:
        async for chunk in request.stream():
            if chunk:
                parser.write(chunk)
            if collector.file_bytes_read > max_file_size:
                logger.error("File size exceeds maximum limit of %d bytes", max_file_size)
                raise PayloadTooLarge(
                    f"File size exceeds maximum limit of {max_file_size} bytes"
                )
            if collector.custom_filename_too_long:
                raise BadRequest(
                    f"Custom filename exceeds {MAX_CUSTOM_FILENAME_BYTES} bytes"
                )
        parser.finalize()
    except MultipartParseError as e:
        logger.error(f"Error parsing multipart: {e}")
        raise MultipartError(f"Failed to parse multipart form: {e}") from e
    except ClientDisconnect as e:
        logger.error("Error reading file bytes: client disconnected")
        raise FileProcessingError("Failed to read the file: client disconnected") from e

    if not collector.finished:
        raise MultipartError("Failed to parse multipart form: unexpected end of body")
    return collector.form
