"""Agent profile models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class IdlePlan(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    messages: list[str] | None = Field(
        default=None,
        validation_alias=AliasChoices("messages", "idleMessages"),
        serialization_alias="messages",
    )
    timeout_seconds: float | None = Field(
        default=None,
        validation_alias=AliasChoices("timeoutSeconds", "idleTimeoutSeconds"),
        serialization_alias="timeoutSeconds",
    )
    max_spoken_count: int | None = Field(
        default=None,
        validation_alias=AliasChoices("maxSpokenCount", "idleMessageMaxSpokenCount"),
        serialization_alias="maxSpokenCount",
    )

    def to_provider(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.messages is not None:
            out["idleMessages"] = list(self.messages)
        if self.timeout_seconds is not None:
            out["idleTimeoutSeconds"] = self.timeout_seconds
        if self.max_spoken_count is not None:
            out["idleMessageMaxSpokenCount"] = self.max_spoken_count
        return out


class ProfileChanges(BaseModel):
    """Partial profile. A field left as None means "no change requested"."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    instructions: str | None = Field(
        default=None,
        validation_alias=AliasChoices("instructions", "systemMessage"),
        serialization_alias="instructions",
    )
    generation_limit: int | None = Field(
        default=None,
        validation_alias=AliasChoices("generationLimit", "maxTokens"),
        serialization_alias="generationLimit",
    )
    voice_rate: float | None = Field(
        default=None,
        validation_alias=AliasChoices("voiceRate", "voiceSpeed"),
        serialization_alias="voiceRate",
    )
    greeting: str | None = Field(
        default=None,
        validation_alias=AliasChoices("greeting", "firstMessage"),
        serialization_alias="greeting",
    )
    silence_timeout_seconds: float | None = Field(
        default=None,
        validation_alias=AliasChoices("silenceTimeoutSeconds"),
        serialization_alias="silenceTimeoutSeconds",
    )
    max_duration_seconds: float | None = Field(
        default=None,
        validation_alias=AliasChoices("maxDurationSeconds"),
        serialization_alias="maxDurationSeconds",
    )
    idle_plan: IdlePlan | None = Field(
        default=None,
        validation_alias=AliasChoices("idlePlan", "messagePlan"),
        serialization_alias="idlePlan",
    )
    bound_capability_ids: list[str] | None = Field(
        default=None,
        validation_alias=AliasChoices("boundCapabilityIds", "toolIds"),
        serialization_alias="boundCapabilityIds",
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)

    def is_empty(self) -> bool:
        return not self.to_dict()

    def field_names(self) -> list[str]:
        return list(self.to_dict())


@dataclass(slots=True)
class AgentProfile:
    profile_id: str
    instructions: str = ""
    generation_limit: int | None = None
    greeting: str | None = None
    voice_rate: float | None = None
    silence_timeout_seconds: float | None = None
    max_duration_seconds: float | None = None
    idle_plan: dict[str, Any] = field(default_factory=dict)
    bound_capability_ids: list[str] = field(default_factory=list)
    schema_name: str = ""
    raw: dict[str, Any] = field(default_factory=dict)

    def snapshot(self) -> dict[str, Any]:
        return {
            "instructions": self.instructions,
            "generationLimit": self.generation_limit,
            "voiceRate": self.voice_rate,
            "greeting": self.greeting,
            "silenceTimeoutSeconds": self.silence_timeout_seconds,
            "maxDurationSeconds": self.max_duration_seconds,
            "idlePlan": dict(self.idle_plan),
            "boundCapabilityIds": list(self.bound_capability_ids),
        }

    def with_changes(self, changes: ProfileChanges) -> dict[str, Any]:
        merged = self.snapshot()
        for key, value in changes.to_dict().items():
            if key == "idlePlan" and isinstance(value, dict):
                merged["idlePlan"] = {**merged["idlePlan"], **value}
            else:
                merged[key] = value
        return merged
