from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from pathlib import Path
from typing import AsyncIterator, Protocol, Sequence

from .attachments import AttachmentStager
from .errors import InvocationExitError, InvocationStartError, InvocationTimeoutError
from .types import CompletedProcess, InvocationResult

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "q"
# asyncio's default 64 KiB line limit is too small for long model answers.
STREAM_LINE_LIMIT = 1024 * 1024


class RunningProcess(Protocol):
    returncode: int | None

    def lines(self) -> AsyncIterator[str]: ...

    async def wait(self) -> int: ...

    async def kill(self) -> None: ...


class ProcessRunner(Protocol):
    async def run(self, argv: Sequence[str], timeout: float | None = None) -> CompletedProcess: ...

    async def start(self, argv: Sequence[str]) -> RunningProcess: ...


class SubprocessStream:
    """Line-oriented view of a running subprocess's standard output."""

    def __init__(self, process: asyncio.subprocess.Process) -> None:
        self._process = process

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    async def lines(self) -> AsyncIterator[str]:
        assert self._process.stdout is not None
        async for raw in self._process.stdout:
            yield raw.decode("utf-8", errors="replace").rstrip("\r\n")

    async def wait(self) -> int:
        return await self._process.wait()

    async def kill(self) -> None:
        if self._process.returncode is not None:
            return

        with contextlib.suppress(ProcessLookupError):
            self._process.kill()
        await self._process.wait()


class AsyncioProcessRunner:
    async def run(self, argv: Sequence[str], timeout: float | None = None) -> CompletedProcess:
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as exc:
            raise InvocationStartError(f"failed to start {argv[0]}: {exc}") from exc

        try:
            output, _ = await asyncio.wait_for(process.communicate(), timeout)
        except TimeoutError as exc:
            await _kill(process)
            raise InvocationTimeoutError(argv[0], timeout or 0) from exc
        except asyncio.CancelledError:
            await _kill(process)
            raise

        return CompletedProcess(returncode=process.returncode or 0, output=output or b"")

    async def start(self, argv: Sequence[str]) -> SubprocessStream:
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.DEVNULL,
                limit=STREAM_LINE_LIMIT,
            )
        except OSError as exc:
            raise InvocationStartError(f"failed to start {argv[0]}: {exc}") from exc

        if process.stdout is None:
            await _kill(process)
            raise InvocationStartError(f"could not attach to {argv[0]} output stream")

        return SubprocessStream(process)


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
    await process.wait()


class LineStream:
    """Non-blank output lines of one streamed invocation.

    ``returncode`` is populated once the lines are exhausted and the process
    has exited. Closing the iterator early, or calling ``close`` before it
    was ever started, kills the process.
    """

    def __init__(self, executable: str, process: RunningProcess) -> None:
        self.executable = executable
        self.returncode: int | None = None
        self.process = process
        self._started = time.perf_counter_ns()

    async def lines(self) -> AsyncIterator[str]:
        try:
            async for line in self.process.lines():
                if line:
                    yield line

            self.returncode = await self.process.wait()
            logger.info(
                "Streamed %s invocation finished: exit status %d in %.1f ms",
                self.executable,
                self.returncode,
                (time.perf_counter_ns() - self._started) / 1_000_000,
            )
        finally:
            if self.returncode is None:
                logger.info("Streamed %s invocation closed early, killing process", self.executable)
                await self.process.kill()

    async def close(self) -> None:
        """Kill the process unless it already ran to completion."""
        if self.returncode is None:
            await self.process.kill()

    def exit_error(self) -> InvocationExitError | None:
        if self.returncode is None or self.returncode == 0:
            return None

        return InvocationExitError(self.executable, self.returncode, "")


class ProcessInvoker:
    def __init__(
        self,
        executable: str = DEFAULT_EXECUTABLE,
        runner: ProcessRunner | None = None,
        stager: AttachmentStager | None = None,
        timeout: float | None = None,
    ) -> None:
        self.executable = executable
        self.runner = runner or AsyncioProcessRunner()
        self.stager = stager or AttachmentStager()
        self.timeout = timeout

    def build_arguments(
        self,
        instruction: str,
        attachments: Sequence[Path | str] = (),
    ) -> list[str]:
        argv = [self.executable, "chat", "--message", instruction]
        for path in attachments:
            argv.extend(["--file", str(path)])
        return argv

    async def invoke(self, instruction: str, images: Sequence[str] = ()) -> InvocationResult:
        """Run the assistant to completion and return its trimmed output."""

        started = time.perf_counter_ns()
        with self.stager.stage(images) as attachments:
            argv = self.build_arguments(instruction, attachments)
            logger.info(
                "Invoking %s with %d attachment(s) of %d supplied",
                self.executable,
                len(attachments),
                len(images),
            )
            logger.debug("argv: %r", argv)
            completed = await self.runner.run(argv, timeout=self.timeout)
        elapsed_ns = time.perf_counter_ns() - started

        output = completed.output.decode("utf-8", errors="replace")
        logger.info(
            "%s exited with status %d in %.1f ms",
            self.executable,
            completed.returncode,
            elapsed_ns / 1_000_000,
        )

        if completed.returncode != 0:
            raise InvocationExitError(self.executable, completed.returncode, output)

        return InvocationResult(
            text=output.strip(),
            elapsed_ns=elapsed_ns,
            argv=argv,
            attachments=attachments,
        )

    async def open_stream(self, instruction: str) -> LineStream:
        """Start the assistant and return its output as a line stream.

        Attachments are never forwarded in this mode.
        """

        argv = self.build_arguments(instruction)
        logger.info("Starting streamed %s invocation", self.executable)
        logger.debug("argv: %r", argv)
        process = await self.runner.start(argv)
        return LineStream(self.executable, process)
