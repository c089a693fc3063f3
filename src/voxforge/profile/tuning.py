"""Configuration tuning adapter: read-merge-write of partial profile changes."""

from __future__ import annotations

import logging
from typing import Any

from voxforge.errors import ProfileFetchError, VoxforgeError
from voxforge.profile.schemas import select_schema
from voxforge.profile.types import AgentProfile, IdlePlan, ProfileChanges
from voxforge.voice.client import VoiceClient

logger = logging.getLogger(__name__)


def _as_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return value


def profile_from_assistant(profile_id: str, assistant: dict[str, Any]) -> AgentProfile:
    model = _as_dict(assistant.get("model"))
    voice = _as_dict(assistant.get("voice"))
    schema = select_schema(model)
    tool_ids = model.get("toolIds")
    generation_limit = model.get("maxTokens")
    greeting = assistant.get("firstMessage")
    return AgentProfile(
        profile_id=profile_id,
        instructions=schema.read_instructions(model),
        generation_limit=generation_limit if isinstance(generation_limit, int) else None,
        greeting=greeting if isinstance(greeting, str) else None,
        voice_rate=_number(voice.get("speed")),
        silence_timeout_seconds=_number(assistant.get("silenceTimeoutSeconds")),
        max_duration_seconds=_number(assistant.get("maxDurationSeconds")),
        idle_plan=IdlePlan.model_validate(_as_dict(assistant.get("messagePlan"))).model_dump(
            by_alias=True, exclude_none=True
        ),
        bound_capability_ids=[str(item) for item in tool_ids] if isinstance(tool_ids, list) else [],
        schema_name=schema.name,
        raw=assistant,
    )


class TuningAdapter:
    def __init__(self, voice: VoiceClient) -> None:
        self.voice = voice

    async def fetch(self, profile_id: str) -> AgentProfile:
        try:
            assistant = await self.voice.get_assistant(profile_id)
        except VoxforgeError as exc:
            raise ProfileFetchError(f"could not read profile {profile_id}: {exc}") from exc
        return profile_from_assistant(profile_id, assistant)

    @staticmethod
    def _needs_live_read(changes: ProfileChanges) -> bool:
        return any(
            value is not None
            for value in (
                changes.instructions,
                changes.generation_limit,
                changes.bound_capability_ids,
                changes.voice_rate,
                changes.idle_plan,
            )
        )

    async def apply(self, profile_id: str, changes: ProfileChanges) -> dict[str, Any]:
        """Write ``changes`` to the live profile and return the PATCH body sent.

        Structural sub-objects are merged over the live profile so untouched
        siblings survive. A failed live read raises ProfileFetchError and
        nothing is written. Empty changes make no network call.
        """
        if changes.is_empty():
            logger.info("No changes to apply to profile %s", profile_id)
            return {}

        live: dict[str, Any] = {}
        if self._needs_live_read(changes):
            try:
                live = await self.voice.get_assistant(profile_id)
            except VoxforgeError as exc:
                raise ProfileFetchError(
                    f"could not read profile {profile_id} before update: {exc}"
                ) from exc

        patch: dict[str, Any] = {}

        # The provider replaces the whole model object on PATCH.
        model_changes = (
            changes.instructions is not None
            or changes.generation_limit is not None
            or changes.bound_capability_ids is not None
        )
        if model_changes:
            model = _as_dict(live.get("model"))
            if changes.instructions is not None:
                model = select_schema(model).write_instructions(model, changes.instructions)
            if changes.generation_limit is not None:
                model["maxTokens"] = changes.generation_limit
            if changes.bound_capability_ids is not None:
                model["toolIds"] = list(changes.bound_capability_ids)
            patch["model"] = model

        if changes.voice_rate is not None:
            patch["voice"] = {**_as_dict(live.get("voice")), "speed": changes.voice_rate}

        if changes.idle_plan is not None:
            patch["messagePlan"] = {
                **_as_dict(live.get("messagePlan")),
                **changes.idle_plan.to_provider(),
            }

        if changes.greeting is not None:
            patch["firstMessage"] = changes.greeting
        if changes.silence_timeout_seconds is not None:
            patch["silenceTimeoutSeconds"] = changes.silence_timeout_seconds
        if changes.max_duration_seconds is not None:
            patch["maxDurationSeconds"] = changes.max_duration_seconds

        await self.voice.update_assistant(profile_id, patch)
        return patch
