"""
Turns a user-selected file into an inline base64 part for the extraction service.

Files sitting in OS-managed temporary locations (screenshot drop folders,
the system temp dir) can disappear at any moment, so they are first copied
into a scratch directory under a unique name. Reads are capped at
``max_bytes``: anything longer is truncated and logged, which keeps the
request inside the transport limit at the cost of losing the file's tail.
"""

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
import re
import shutil
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urlparse

from llm.schemas import EncodedFile
from smart_calendar.errors import FileAccessError, UnsupportedFormat

logger = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 4 * 1024 * 1024

# macOS screenshot/drag-and-drop locations that the OS garbage-collects
TEMP_PATH_MARKERS = ("/var/folders/", "TemporaryItems", "screencaptureui")


@dataclass
class UploadedFile:
    """File content that already arrived in memory (e.g. a multipart upload)."""

    filename: str
    data: bytes
    content_type: Optional[str] = None
    # full size when `data` was read only up to the ceiling
    size: Optional[int] = None


FileSource = Union[str, Path, UploadedFile]


def source_name(source: FileSource) -> str:
    if isinstance(source, UploadedFile):
        return source.filename
    return Path(_to_path(source)).name


def _to_path(source: Union[str, Path]) -> Path:
    text = str(source)
    if text.startswith("file://"):
        text = unquote(urlparse(text).path)
    return Path(text).expanduser()


def is_supported_mime(mime_type: str) -> bool:
    return mime_type == "application/pdf" or mime_type.startswith("image/")


class FileEncoder:
    def __init__(self, scratch_dir: Optional[str] = None, max_bytes: int = DEFAULT_MAX_BYTES):
        self.scratch_dir = Path(scratch_dir or Path(tempfile.gettempdir()) / "smart_calendar_uploads")
        self.max_bytes = max_bytes

    async def encode(self, source: FileSource) -> EncodedFile:
        return await asyncio.to_thread(self.encode_sync, source)

    def encode_sync(self, source: FileSource) -> EncodedFile:
        if isinstance(source, UploadedFile):
            mime_type = self.detect_mime(source.filename, source.content_type)
            self._require_supported(mime_type, source.filename)
            total_size = max(source.size or 0, len(source.data))
            return self._encode_bytes(source.data[: self.max_bytes], total_size, mime_type, source.filename)

        path = _to_path(source)
        name = path.name
        mime_type = self.detect_mime(name)
        self._require_supported(mime_type, name)

        if self.is_ephemeral(path):
            logger.info(f"Temporary file path detected, copying {name} to scratch storage")
            path = self._durable_copy(path)

        try:
            total_size = path.stat().st_size
            with path.open("rb") as f:
                raw = f.read(self.max_bytes)
        except OSError as e:
            raise FileAccessError(f"Failed to read {path}: {e}") from e

        return self._encode_bytes(raw, total_size, mime_type, name)

    def detect_mime(self, filename: str, declared: Optional[str] = None) -> str:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed:
            return guessed
        if declared and declared != "application/octet-stream":
            return declared.split(";", 1)[0].strip().lower()
        return "application/octet-stream"

    def is_ephemeral(self, path: Path) -> bool:
        text = str(path)
        if any(marker in text for marker in TEMP_PATH_MARKERS):
            return True
        try:
            resolved = path.resolve()
            if resolved.is_relative_to(self.scratch_dir.resolve()):
                return False
            return resolved.is_relative_to(Path(tempfile.gettempdir()).resolve())
        except OSError:
            return False

    def _durable_copy(self, path: Path) -> Path:
        if not path.exists():
            raise FileAccessError(
                f"Original temporary file {path} no longer exists. "
                "It may have been cleaned up by the system."
            )

        self.scratch_dir.mkdir(parents=True, exist_ok=True)
        safe_name = re.sub(r"[^a-zA-Z0-9.-]", "_", path.name)
        dest = self.scratch_dir / f"{time.time_ns()}_{safe_name}"
        try:
            shutil.copyfile(path, dest)
        except OSError as e:
            raise FileAccessError(f"Cannot copy temporary file {path}: {e}") from e
        return dest

    def _require_supported(self, mime_type: str, filename: str) -> None:
        if not is_supported_mime(mime_type):
            raise UnsupportedFormat(f"{filename}: {mime_type} is not an image or PDF")

    def _encode_bytes(self, raw: bytes, total_size: int, mime_type: str, filename: str) -> EncodedFile:
        if total_size == 0 or not raw:
            raise FileAccessError(f"{filename} is empty")

        truncated = total_size > self.max_bytes
        if truncated:
            logger.warning(
                f"{filename} is {total_size} bytes, sending only the first {self.max_bytes} bytes"
            )

        data = base64.b64encode(raw).decode("ascii")
        logger.info(f"Encoded {filename} ({mime_type}, {len(raw)} bytes, {len(data)} chars encoded)")
        return EncodedFile(data=data, mime_type=mime_type, filename=filename, truncated=truncated)
