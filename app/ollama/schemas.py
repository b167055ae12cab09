from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class GenerateRequest(BaseModel):
    prompt: str = Field(min_length=1)
    images: list[str] | None = None
    stream: bool = False

    # Accepted for compatibility but ignored (reported in warning header)
    model: str | None = None
    format: str | dict[str, Any] | None = None
    options: dict[str, Any] | None = None
    system: str | None = None
    template: str | None = None
    context: list[int] | None = None
    raw: bool | None = None
    keep_alive: str | int | None = None

    model_config = ConfigDict(extra="allow")


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""
    images: list[str] | None = None
    tool_calls: list[dict[str, Any]] | dict[str, Any] | None = None

    model_config = ConfigDict(extra="allow", frozen=True)


class ChatRequest(BaseModel):
    messages: list[ChatMessage]
    stream: bool = False

    model: str | None = None
    format: str | dict[str, Any] | None = None
    options: dict[str, Any] | None = None
    tools: list[dict[str, Any]] | None = None
    keep_alive: str | int | None = None

    model_config = ConfigDict(extra="allow")


class ShowRequest(BaseModel):
    name: str | None = None
    model: str | None = None
    verbose: bool | None = None

    model_config = ConfigDict(extra="allow")


class ModelNameRequest(BaseModel):
    """Body of the create/pull/push/delete model-management calls."""

    name: str | None = None
    model: str | None = None

    model_config = ConfigDict(extra="allow")


class CopyRequest(BaseModel):
    source: str
    destination: str

    model_config = ConfigDict(extra="allow")


class EmbeddingsRequest(BaseModel):
    model: str | None = None
    prompt: str | None = None
    input: str | list[str] | None = None

    model_config = ConfigDict(extra="allow")
