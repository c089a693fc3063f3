"""Versioned adapters for where the provider keeps the instructions text.

Each schema knows one structural layout of the assistant ``model`` object.
``select_schema`` probes them in priority order and falls back to the first.
"""

from __future__ import annotations

from typing import Any, Protocol


class ProfileSchema(Protocol):
    name: str

    def matches(self, model: dict[str, Any]) -> bool: ...

    def read_instructions(self, model: dict[str, Any]) -> str: ...

    def write_instructions(self, model: dict[str, Any], text: str) -> dict[str, Any]: ...


class ChatMessagesSchema:
    """Instructions are the ``system`` entry of ``model.messages``."""

    name = "chat-messages"

    def matches(self, model: dict[str, Any]) -> bool:
        return isinstance(model.get("messages"), list)

    def read_instructions(self, model: dict[str, Any]) -> str:
        messages = model.get("messages")
        if not isinstance(messages, list):
            return ""
        for message in messages:
            if isinstance(message, dict) and message.get("role") == "system":
                return str(message.get("content") or "")
        return ""

    def write_instructions(self, model: dict[str, Any], text: str) -> dict[str, Any]:
        messages = model.get("messages")
        current = list(messages) if isinstance(messages, list) else []
        updated: list[Any] = []
        replaced = False
        for message in current:
            if not replaced and isinstance(message, dict) and message.get("role") == "system":
                updated.append({**message, "content": text})
                replaced = True
            else:
                updated.append(message)
        if not replaced:
            updated.insert(0, {"role": "system", "content": text})
        return {**model, "messages": updated}


class SystemPromptSchema:
    """Instructions are a flat ``model.systemPrompt`` string."""

    name = "system-prompt"

    def matches(self, model: dict[str, Any]) -> bool:
        return isinstance(model.get("systemPrompt"), str)

    def read_instructions(self, model: dict[str, Any]) -> str:
        return str(model.get("systemPrompt") or "")

    def write_instructions(self, model: dict[str, Any], text: str) -> dict[str, Any]:
        return {**model, "systemPrompt": text}


SCHEMAS: tuple[ProfileSchema, ...] = (ChatMessagesSchema(), SystemPromptSchema())


def select_schema(model: dict[str, Any] | None) -> ProfileSchema:
    if isinstance(model, dict):
        for schema in SCHEMAS:
            if schema.matches(model):
                return schema
    return SCHEMAS[0]
