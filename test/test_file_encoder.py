import asyncio
import base64
from pathlib import Path

import pytest

from extraction.file_encoder import FileEncoder, UploadedFile
from smart_calendar.errors import FileAccessError, UnsupportedFormat


def _encoder(tmp_path, max_bytes=1024):
    return FileEncoder(scratch_dir=str(tmp_path / "scratch"), max_bytes=max_bytes)


def test_pdf_is_base64_encoded(tmp_path):
    src = tmp_path / "syllabus.pdf"
    src.write_bytes(b"%PDF-1.4 fake syllabus")
    encoded = asyncio.run(_encoder(tmp_path).encode(src))
    assert encoded.mime_type == "application/pdf"
    assert base64.b64decode(encoded.data) == b"%PDF-1.4 fake syllabus"
    assert encoded.filename == "syllabus.pdf"
    assert encoded.truncated is False


def test_file_uri_is_accepted(tmp_path):
    src = tmp_path / "my notes.png"
    src.write_bytes(b"\x89PNG data")
    encoded = asyncio.run(_encoder(tmp_path).encode(src.as_uri()))
    assert encoded.mime_type == "image/png"
    assert base64.b64decode(encoded.data) == b"\x89PNG data"


def test_ephemeral_file_is_copied_to_scratch(tmp_path):
    drop = tmp_path / "TemporaryItems"
    drop.mkdir()
    src = drop / "Screen Shot 1.png"
    src.write_bytes(b"\x89PNG screenshot")

    encoder = _encoder(tmp_path)
    assert encoder.is_ephemeral(src)
    encoded = asyncio.run(encoder.encode(src))

    copies = list((tmp_path / "scratch").iterdir())
    assert len(copies) == 1
    assert copies[0].name.endswith("_Screen_Shot_1.png")
    assert copies[0].read_bytes() == b"\x89PNG screenshot"
    assert base64.b64decode(encoded.data) == b"\x89PNG screenshot"


def test_scratch_copies_never_collide(tmp_path):
    drop = tmp_path / "TemporaryItems"
    drop.mkdir()
    src = drop / "shot.png"
    src.write_bytes(b"png")
    encoder = _encoder(tmp_path)
    for _ in range(3):
        encoder.encode_sync(src)
    assert len(list((tmp_path / "scratch").iterdir())) == 3


def test_vanished_ephemeral_file_fails_fast(tmp_path):
    missing = tmp_path / "TemporaryItems" / "gone.png"
    with pytest.raises(FileAccessError) as exc:
        asyncio.run(_encoder(tmp_path).encode(missing))
    assert "no longer exists" in str(exc.value)


def test_unreadable_file_is_file_access_error(tmp_path):
    with pytest.raises(FileAccessError):
        _encoder(tmp_path).encode_sync("/definitely/not/here/syllabus.pdf")


def test_empty_file_is_file_access_error(tmp_path):
    src = tmp_path / "empty.pdf"
    src.write_bytes(b"")
    with pytest.raises(FileAccessError):
        _encoder(tmp_path).encode_sync(src)
    with pytest.raises(FileAccessError):
        _encoder(tmp_path).encode_sync(UploadedFile("empty.png", b"", "image/png"))


def test_non_image_non_pdf_is_unsupported(tmp_path):
    src = tmp_path / "notes.txt"
    src.write_text("Midterm on Friday")
    with pytest.raises(UnsupportedFormat):
        _encoder(tmp_path).encode_sync(src)


def test_large_file_is_truncated(tmp_path):
    src = tmp_path / "big.jpg"
    src.write_bytes(b"abcdefgh")
    encoded = _encoder(tmp_path, max_bytes=4).encode_sync(src)
    assert encoded.truncated is True
    assert base64.b64decode(encoded.data) == b"abcd"


def test_partially_read_upload_reports_its_full_size(tmp_path, caplog):
    upload = UploadedFile("scan.png", b"abcde", "image/png", size=5000)
    with caplog.at_level("WARNING"):
        encoded = _encoder(tmp_path, max_bytes=4).encode_sync(upload)
    assert encoded.truncated is True
    assert base64.b64decode(encoded.data) == b"abcd"
    assert "5000 bytes" in caplog.text


def test_upload_uses_declared_type_when_name_has_no_extension(tmp_path):
    encoded = _encoder(tmp_path).encode_sync(UploadedFile("blob", b"img", "image/png"))
    assert encoded.mime_type == "image/png"

    with pytest.raises(UnsupportedFormat):
        _encoder(tmp_path).encode_sync(UploadedFile("blob", b"data", "application/octet-stream"))


def test_macos_temp_paths_are_ephemeral(tmp_path):
    encoder = _encoder(tmp_path)
    assert encoder.is_ephemeral(Path("/var/folders/ab/T/screencaptureui/shot.png"))
    assert not encoder.is_ephemeral(Path("/home/student/Documents/syllabus.pdf"))
    assert not encoder.is_ephemeral(tmp_path / "scratch" / "copy.png")
