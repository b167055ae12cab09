from __future__ import annotations

import base64
import binascii
import logging
import tempfile
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Sequence

from .errors import AttachmentDecodeError

logger = logging.getLogger(__name__)

ATTACHMENT_PREFIX = "q_image"
ATTACHMENT_SUFFIX = ".png"


class TempFileProvider:
    """Writes attachment bytes to uniquely named files in a temp directory."""

    def __init__(self, directory: Path | str | None = None) -> None:
        self.directory = Path(directory) if directory else Path(tempfile.gettempdir())

    def create(self, data: bytes, index: int) -> Path:
        name = (
            f"{ATTACHMENT_PREFIX}_{time.time_ns()}_{uuid.uuid4().hex}_{index}"
            f"{ATTACHMENT_SUFFIX}"
        )
        path = self.directory / name
        with path.open("xb") as handle:
            handle.write(data)
        return path

    def remove(self, path: Path) -> None:
        path.unlink(missing_ok=True)


def decode_attachment(index: int, payload: str) -> bytes:
    # Line breaks are tolerated, anything else outside the alphabet is not.
    cleaned = payload.replace("\r", "").replace("\n", "")
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise AttachmentDecodeError(index, str(exc)) from exc


class AttachmentStager:
    def __init__(self, provider: TempFileProvider | None = None) -> None:
        self.provider = provider or TempFileProvider()

    @contextmanager
    def stage(self, encoded: Sequence[str]) -> Iterator[list[Path]]:
        """Yield one path per usable attachment and remove them all on exit.

        Attachments that fail to decode or write are skipped with a warning.
        """

        staged: list[Path] = []
        try:
            for index, payload in enumerate(encoded):
                try:
                    data = decode_attachment(index, payload)
                except AttachmentDecodeError as exc:
                    logger.warning("Skipping attachment: %s", exc)
                    continue

                try:
                    path = self.provider.create(data, index)
                except OSError as exc:
                    logger.warning("Skipping attachment %d: could not write file: %s", index, exc)
                    continue

                staged.append(path)

            yield list(staged)
        finally:
            for path in staged:
                try:
                    self.provider.remove(path)
                except OSError as exc:
                    logger.warning("Failed to remove staged attachment %s: %s", path, exc)
