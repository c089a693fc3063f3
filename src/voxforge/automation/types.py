"""Automation data models."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AutomationStep(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    method: str = "POST"
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body_template: str = Field(alias="bodyTemplate", default="")

    @field_validator("body_template", mode="before")
    @classmethod
    def _serialize_structured_body(cls, value: Any) -> Any:
        if isinstance(value, dict | list):
            return json.dumps(value)
        return "" if value is None else value


class AutomationSpec(BaseModel):
    """Ordered HTTP steps behind a unique webhook trigger path."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = Field(min_length=1)
    trigger_path: str = Field(alias="triggerPath", min_length=1)
    steps: list[AutomationStep] = Field(default_factory=list)


@dataclass(slots=True)
class DeployedAutomation:
    name: str
    trigger_path: str
    steps: list[AutomationStep]
    deployed_id: str
    endpoint_url: str
    active: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "triggerPath": self.trigger_path,
            "deployedId": self.deployed_id,
            "endpointURL": self.endpoint_url,
            "active": self.active,
            "steps": [step.model_dump(by_alias=True) for step in self.steps],
        }
