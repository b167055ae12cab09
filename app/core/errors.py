from __future__ import annotations

import signal
from dataclasses import dataclass


@dataclass
class GatewayError(Exception):
    status_code: int
    message: str
    code: str | None = None

    def __str__(self) -> str:
        return self.message


class ValidationError(GatewayError):
    """Request was rejected before any process was started."""

    def __init__(self, message: str, code: str = "invalid_request") -> None:
        super().__init__(status_code=400, message=message, code=code)


class InvocationError(GatewayError):
    """The external assistant process could not produce a result."""

    def __init__(
        self,
        message: str,
        output: str = "",
        status_code: int = 500,
        code: str = "invocation_failed",
    ) -> None:
        super().__init__(status_code=status_code, message=message, code=code)
        self.output = output


class InvocationStartError(InvocationError):
    def __init__(self, message: str) -> None:
        super().__init__(message, code="invocation_start_failed")


class InvocationExitError(InvocationError):
    def __init__(self, executable: str, returncode: int, output: str) -> None:
        super().__init__(
            f"{executable} command failed: {describe_exit(returncode)}, output: {output}",
            output=output,
            code="invocation_exit_failed",
        )
        self.returncode = returncode


class InvocationTimeoutError(InvocationError):
    def __init__(self, executable: str, timeout: float, output: str = "") -> None:
        super().__init__(
            f"{executable} command timed out after {timeout:g} seconds",
            output=output,
            status_code=504,
            code="invocation_timeout",
        )


class AttachmentDecodeError(ValueError):
    """An inline attachment was not valid base64. Never leaves the stager."""

    def __init__(self, index: int, reason: str) -> None:
        super().__init__(f"attachment {index} could not be decoded: {reason}")
        self.index = index


def describe_exit(returncode: int) -> str:
    """Render an exit status the way the process table reports it."""

    if returncode >= 0:
        return f"exit status {returncode}"

    try:
        return f"signal: {signal.Signals(-returncode).name}"
    except ValueError:
        return f"signal: {-returncode}"
