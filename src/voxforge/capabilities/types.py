"""Capability data models."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from voxforge.ids import now_iso

CapabilityHandler = Callable[[dict[str, Any]], Awaitable[str]]


class Origin(StrEnum):
    SEED = "seed"
    SYNTHESIZED = "synthesized"


@dataclass(slots=True, frozen=True)
class ParameterSpec:
    name: str
    type: str = "string"
    description: str = ""
    required: bool = False


@dataclass(slots=True)
class CapabilityDefinition:
    name: str
    description: str
    handler: CapabilityHandler
    parameters: list[ParameterSpec] = field(default_factory=list)
    origin: Origin = Origin.SEED
    created_at: str = field(default_factory=now_iso)

    @property
    def is_synthesized(self) -> bool:
        return self.origin is Origin.SYNTHESIZED

    def parameter_schema(self) -> dict[str, object]:
        return {
            "type": "object",
            "properties": {
                param.name: {"type": param.type, "description": param.description}
                for param in self.parameters
            },
            "required": [param.name for param in self.parameters if param.required],
        }

    def summary(self) -> dict[str, object]:
        return {
            "name": self.name,
            "description": self.description,
            "origin": self.origin.value,
            "isDynamic": self.is_synthesized,
            "createdAt": self.created_at,
            "params": [param.name for param in self.parameters],
        }


class CapabilitySpec(BaseModel):
    """Declarative capability request as produced by the reasoning service."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    description: str = ""
    parameter_schema: dict[str, Any] = Field(
        alias="parameterSchema",
        default_factory=lambda: {"type": "object", "properties": {}},
    )
    handler_source: str | list[Any] | dict[str, Any] = Field(alias="handlerSource")


def parameters_from_schema(schema: dict[str, Any]) -> list[ParameterSpec]:
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return []
    raw_required = schema.get("required")
    required = (
        {item for item in raw_required if isinstance(item, str)}
        if isinstance(raw_required, list)
        else set()
    )
    params: list[ParameterSpec] = []
    for name, prop in properties.items():
        if not isinstance(name, str) or not name:
            continue
        prop = prop if isinstance(prop, dict) else {}
        params.append(
            ParameterSpec(
                name=name,
                type=str(prop.get("type") or "string"),
                description=str(prop.get("description") or ""),
                required=name in required,
            )
        )
    return params
