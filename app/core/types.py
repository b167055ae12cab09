from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

CALLER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
TURN_ROLES = frozenset({"system", CALLER_ROLE, ASSISTANT_ROLE, "tool"})


@dataclass(slots=True, frozen=True)
class Turn:
    role: str
    content: str = ""
    images: tuple[str, ...] = ()
    tool_calls: Any = None


@dataclass(slots=True, frozen=True)
class CallerTurn:
    content: str
    images: tuple[str, ...] = ()


@dataclass(slots=True)
class CompletedProcess:
    returncode: int
    output: bytes


@dataclass(slots=True)
class InvocationResult:
    text: str
    elapsed_ns: int
    argv: list[str] = field(default_factory=list)
    attachments: list[Path] = field(default_factory=list)
