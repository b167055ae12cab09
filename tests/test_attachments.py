from __future__ import annotations

import base64
import logging
from pathlib import Path

import pytest

from app.core.attachments import AttachmentStager, TempFileProvider, decode_attachment
from app.core.errors import AttachmentDecodeError


def _encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def test_decode_attachment_tolerates_line_breaks():
    encoded = _encode(b"hello world, this is an attachment")
    wrapped = encoded[:10] + "\r\n" + encoded[10:]

    assert decode_attachment(0, wrapped) == b"hello world, this is an attachment"


def test_decode_attachment_rejects_invalid_payload():
    with pytest.raises(AttachmentDecodeError) as excinfo:
        decode_attachment(3, "***")

    assert excinfo.value.index == 3


def test_stage_writes_decoded_bytes_and_cleans_up(tmp_path: Path):
    stager = AttachmentStager(TempFileProvider(tmp_path))

    with stager.stage([_encode(b"one"), _encode(b"two")]) as paths:
        assert [path.read_bytes() for path in paths] == [b"one", b"two"]
        assert all(path.name.startswith("q_image_") for path in paths)
        assert all(path.suffix == ".png" for path in paths)

    assert list(tmp_path.iterdir()) == []


def test_stage_skips_bad_attachments(tmp_path: Path, caplog):
    stager = AttachmentStager(TempFileProvider(tmp_path))

    with caplog.at_level(logging.WARNING, logger="app.core.attachments"):
        with stager.stage(["!!not-base64!!", _encode(b"ok")]) as paths:
            assert len(paths) == 1
            assert paths[0].read_bytes() == b"ok"

    assert "Skipping attachment" in caplog.text
    assert list(tmp_path.iterdir()) == []


def test_stage_removes_files_when_body_raises(tmp_path: Path):
    stager = AttachmentStager(TempFileProvider(tmp_path))

    with pytest.raises(RuntimeError):
        with stager.stage([_encode(b"a"), _encode(b"b")]) as paths:
            assert len(paths) == 2
            raise RuntimeError("process blew up")

    assert list(tmp_path.iterdir()) == []


def test_stage_names_are_unique_for_identical_payloads(tmp_path: Path):
    stager = AttachmentStager(TempFileProvider(tmp_path))
    payload = _encode(b"same")

    with stager.stage([payload]) as first, stager.stage([payload]) as second:
        assert first[0] != second[0]
        assert first[0].exists() and second[0].exists()

    assert list(tmp_path.iterdir()) == []


def test_stage_skips_attachment_when_write_fails(tmp_path: Path):
    stager = AttachmentStager(TempFileProvider(tmp_path / "missing-dir"))

    with stager.stage([_encode(b"data")]) as paths:
        assert paths == []


def test_stage_tolerates_file_already_removed(tmp_path: Path):
    stager = AttachmentStager(TempFileProvider(tmp_path))

    with stager.stage([_encode(b"gone")]) as paths:
        paths[0].unlink()

    assert list(tmp_path.iterdir()) == []
