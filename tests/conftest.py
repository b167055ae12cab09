from __future__ import annotations

from pathlib import Path
from typing import AsyncIterator, Sequence

import pytest
from fastapi.testclient import TestClient

from app.config import Settings
from app.core.attachments import AttachmentStager, TempFileProvider
from app.core.errors import InvocationStartError
from app.core.invoker import ProcessInvoker
from app.core.types import CompletedProcess
from app.dependencies import get_invoker
from app.main import create_app


class FakeProcess:
    def __init__(
        self,
        lines: Sequence[str],
        returncode: int,
        read_error: Exception | None = None,
    ) -> None:
        self._lines = list(lines)
        self._read_error = read_error
        self._exit_status = returncode
        self.returncode: int | None = None
        self.killed = False

    async def lines(self) -> AsyncIterator[str]:
        for line in self._lines:
            yield line
        if self._read_error is not None:
            raise self._read_error

    async def wait(self) -> int:
        self.returncode = self._exit_status
        return self.returncode

    async def kill(self) -> None:
        self.killed = True
        self.returncode = -9


class FakeRunner:
    """Records argv and answers with canned output instead of spawning processes."""

    def __init__(self) -> None:
        self.output = b"stub completion\n"
        self.returncode = 0
        self.stream_lines: list[str] = ["stub"]
        self.stream_returncode = 0
        self.stream_read_error: Exception | None = None
        self.error: Exception | None = None
        self.calls: list[list[str]] = []
        self.files_seen: list[list[Path]] = []
        self.processes: list[FakeProcess] = []

    async def run(self, argv: Sequence[str], timeout: float | None = None) -> CompletedProcess:
        self.calls.append(list(argv))
        self.files_seen.append(
            [Path(argv[i + 1]) for i, arg in enumerate(argv) if arg == "--file" and Path(argv[i + 1]).exists()]
        )
        if self.error is not None:
            raise self.error
        return CompletedProcess(returncode=self.returncode, output=self.output)

    async def start(self, argv: Sequence[str]) -> FakeProcess:
        self.calls.append(list(argv))
        if self.error is not None:
            raise self.error
        process = FakeProcess(self.stream_lines, self.stream_returncode, self.stream_read_error)
        self.processes.append(process)
        return process


@pytest.fixture()
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(_env_file=None, temp_dir=tmp_path)


@pytest.fixture()
def invoker(fake_runner: FakeRunner, tmp_path: Path) -> ProcessInvoker:
    return ProcessInvoker(
        executable="q",
        runner=fake_runner,
        stager=AttachmentStager(TempFileProvider(tmp_path)),
    )


@pytest.fixture()
def client(settings: Settings, invoker: ProcessInvoker) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[get_invoker] = lambda: invoker
    return TestClient(app)


@pytest.fixture()
def start_failure(fake_runner: FakeRunner) -> FakeRunner:
    fake_runner.error = InvocationStartError("failed to start q: [Errno 2] No such file or directory: 'q'")
    return fake_runner
