"""Reasoning-service provider contract."""

from dataclasses import dataclass
from typing import Protocol

Messages = list[dict[str, str]]


@dataclass(slots=True, frozen=True)
class ModelResponse:
    text: str
    model: str = ""
    stop_reason: str = ""


class ModelProvider(Protocol):
    async def generate(
        self,
        messages: Messages,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> ModelResponse: ...

    async def health_check(self) -> bool: ...
