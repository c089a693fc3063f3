"""Reasoning gateway: one call to the reasoning service per analysis."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from voxforge.profile.types import AgentProfile, ProfileChanges
from voxforge.providers.router import ProviderRouter
from voxforge.reasoning.prompts import analysis_system_prompt, analysis_user_prompt

logger = logging.getLogger(__name__)

PARSE_FAILURE = "could not parse output"
PARSE_FAILURE_CHANGE = "no changes made (parse error)"

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*\n?")


class ChangeSet(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    failures: list[str] = Field(default_factory=list)
    changes: list[str] = Field(default_factory=list)
    config_changes: ProfileChanges = Field(
        default_factory=ProfileChanges,
        validation_alias=AliasChoices("configChanges", "config_changes"),
        serialization_alias="configChanges",
    )
    # Items stay raw; each one is validated on its own when the run acts on it.
    new_capabilities: list[Any] = Field(
        default_factory=list,
        validation_alias=AliasChoices("newCapabilities", "new_capabilities"),
        serialization_alias="newCapabilities",
    )
    new_automations: list[Any] = Field(
        default_factory=list,
        validation_alias=AliasChoices("newAutomations", "new_automations"),
        serialization_alias="newAutomations",
    )
    resource_requests: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("resourceRequests", "resource_requests"),
        serialization_alias="resourceRequests",
    )

    @field_validator(
        "failures",
        "changes",
        "new_capabilities",
        "new_automations",
        "resource_requests",
        mode="before",
    )
    @classmethod
    def _null_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("config_changes", mode="before")
    @classmethod
    def _null_config(cls, value: Any) -> Any:
        return {} if value is None else value

    @classmethod
    def parse_failure(cls, current_instructions: str) -> ChangeSet:
        return cls(
            failures=[PARSE_FAILURE],
            changes=[PARSE_FAILURE_CHANGE],
            config_changes=ProfileChanges(instructions=current_instructions),
        )


@dataclass(slots=True)
class Analysis:
    change_set: ChangeSet
    raw: str
    parsed: bool = True
    lane: str = "primary"


def strip_wrappers(text: str) -> str:
    return _FENCE_RE.sub("", text).replace("```", "").strip()


def decode_json_object(text: str) -> dict[str, Any] | None:
    cleaned = strip_wrappers(text)
    candidates = [cleaned]
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if 0 <= start < end:
        candidates.append(cleaned[start : end + 1])
    for candidate in candidates:
        try:
            decoded = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(decoded, dict):
            return decoded
    return None


def parse_change_set(text: str, current_instructions: str) -> tuple[ChangeSet, bool]:
    """Decode a change set, or return the safe no-op fallback and False."""
    decoded = decode_json_object(text)
    if decoded is None:
        logger.error("Reasoning output is not a JSON object (%d chars)", len(text))
        return ChangeSet.parse_failure(current_instructions), False
    try:
        return ChangeSet.model_validate(decoded), True
    except ValidationError as exc:
        logger.error("Reasoning output failed validation: %s", exc.errors()[:3])
        return ChangeSet.parse_failure(current_instructions), False


class ReasoningGateway:
    def __init__(
        self,
        router: ProviderRouter,
        *,
        business_context: str,
        max_tokens: int = 4096,
    ) -> None:
        self.router = router
        self.business_context = business_context
        self.max_tokens = max_tokens

    async def analyze(
        self,
        transcript: str,
        profile: AgentProfile,
        capabilities: list[dict[str, Any]],
        automations: str,
    ) -> Analysis:
        """Ask for a change set. Transport errors propagate as ProviderError."""
        messages = [
            {
                "role": "system",
                "content": analysis_system_prompt(self.business_context, capabilities, automations),
            },
            {
                "role": "user",
                "content": analysis_user_prompt(transcript, profile.instructions, profile.raw),
            },
        ]
        response, lane, _ = await self.router.generate(
            messages, temperature=0.2, max_tokens=self.max_tokens
        )
        logger.info("Reasoning response received (%d chars, %s)", len(response.text), lane)
        change_set, parsed = parse_change_set(response.text, profile.instructions)
        return Analysis(change_set=change_set, raw=response.text, parsed=parsed, lane=lane)
