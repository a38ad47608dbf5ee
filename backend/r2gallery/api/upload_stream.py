"""
Streaming reader for the upload form.

The multipart body is parsed chunk by chunk as it arrives so a bad upload
is turned away as early as possible:
- a declared Content-Length far above the limit is rejected unread
- the "file" part's Content-Type is checked as soon as its headers end
- reading stops once the part grows past max_upload_bytes
"""
from typing import Optional

from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header
from starlette.requests import Request

from r2gallery.schemas.files import IncomingFile
from r2gallery.services.gallery_service import GalleryService

FILE_FIELD = "file"

# Boundaries, part headers and small extra form fields
MULTIPART_OVERHEAD_BYTES = 16 * 1024


class UploadStreamReader:
    """Collects the first "file" part of a multipart/form-data request."""

    def __init__(self, request: Request, service: GalleryService, field_name: str = FILE_FIELD):
        self._request = request
        self._service = service
        self._field_name = field_name.encode()
        self._limit = service.max_upload_bytes
        self._body_limit = self._limit + MULTIPART_OVERHEAD_BYTES

        self._header_name = b""
        self._header_value = b""
        self._disposition = b""
        self._part_content_type = b""
        self._in_file_part = False
        self._type_checked = False
        self._content = bytearray()

        self.filename: Optional[str] = None
        self.content_type: Optional[str] = None
        self.file_bytes = 0
        self.body_bytes = 0

    # python-multipart callbacks

    def on_part_begin(self) -> None:
        self._disposition = b""
        self._part_content_type = b""

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_name += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        name = self._header_name.lower()
        if name == b"content-disposition":
            self._disposition = self._header_value
        elif name == b"content-type":
            self._part_content_type = self._header_value
        self._header_name = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        if self.filename is not None:
            return
        _, options = parse_options_header(self._disposition)
        filename = options.get(b"filename")
        # A part without a filename is a plain text field
        if options.get(b"name") != self._field_name or not filename:
            return
        self.filename = filename.decode("utf-8", errors="replace")
        self.content_type = self._part_content_type.decode("latin-1").strip() or None
        self._in_file_part = True

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if not self._in_file_part:
            return
        self.file_bytes += end - start
        if len(self._content) <= self._limit:
            self._content += data[start:end]

    def on_part_end(self) -> None:
        self._in_file_part = False

    async def read(self) -> IncomingFile:
        """
        Consume the request body and return the uploaded file.

        Raises:
            UploadRejected: No file, disallowed type, oversized or malformed body
        """
        self._check_declared_length()

        content_type, params = parse_options_header(self._request.headers.get("content-type", ""))
        if content_type != b"multipart/form-data":
            self._service.reject("No file uploaded")
        boundary = params.get(b"boundary")
        if not boundary:
            self._service.reject("Invalid multipart body: missing boundary")

        parser = MultipartParser(boundary, {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
        })

        try:
            async for chunk in self._request.stream():
                self.body_bytes += len(chunk)
                parser.write(chunk)
                self._check_progress()
            parser.finalize()
        except MultipartParseError as e:
            self._service.reject(f"Invalid multipart body: {e}", filename=self.filename)

        if self.filename is None:
            self._service.reject("No file uploaded")
        self._service.check_size(self.file_bytes, filename=self.filename)

        return IncomingFile(
            filename=self.filename,
            content_type=self.content_type or "",
            content=bytes(self._content),
        )

    def _check_declared_length(self) -> None:
        declared = self._request.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > self._body_limit:
            self._service.reject_too_large(int(declared))

    def _check_progress(self) -> None:
        if self.filename is not None and not self._type_checked:
            self._service.check_content_type(self.content_type, filename=self.filename)
            self._type_checked = True
        if self.file_bytes > self._limit:
            self._service.reject_too_large(self.file_bytes, filename=self.filename)
        if self.body_bytes > self._body_limit:
            self._service.reject_too_large(self.body_bytes, filename=self.filename)
