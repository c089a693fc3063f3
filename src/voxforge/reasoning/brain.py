"""Conversational brain: picks one action per inbound request and runs it."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from voxforge.capabilities.factory import CapabilityFactory
from voxforge.capabilities.runtime import CapabilityRuntime
from voxforge.capabilities.types import CapabilitySpec
from voxforge.channels.operator import OperatorNotifier
from voxforge.errors import SynthesisError
from voxforge.providers.router import ProviderRouter
from voxforge.reasoning.gateway import decode_json_object
from voxforge.reasoning.prompts import BRAIN_SYSTEM_PROMPT, brain_user_prompt

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE = "I'm here to help with your logistics needs."


class Decision(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: Literal["execute_capability", "create_capability", "respond", "escalate"]
    capability: str | None = Field(
        default=None, validation_alias=AliasChoices("capability", "toolName")
    )
    arguments: dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("arguments", "toolArgs")
    )
    response: str | None = None
    new_capability: CapabilitySpec | None = Field(
        default=None, validation_alias=AliasChoices("newCapability", "new_capability")
    )
    reason: str | None = Field(
        default=None, validation_alias=AliasChoices("reason", "escalationReason")
    )


@dataclass(slots=True)
class BrainResult:
    decision: Decision
    result: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision.model_dump(exclude_none=True, by_alias=True),
            "result": self.result,
        }


class Brain:
    def __init__(
        self,
        router: ProviderRouter,
        runtime: CapabilityRuntime,
        factory: CapabilityFactory,
        notifier: OperatorNotifier,
        *,
        business_context: str,
        max_tokens: int = 1024,
    ) -> None:
        self.router = router
        self.runtime = runtime
        self.factory = factory
        self.notifier = notifier
        self.business_context = business_context
        self.max_tokens = max_tokens

    async def decide(
        self,
        message: str,
        *,
        channel: str = "unknown",
        caller: str | None = None,
    ) -> BrainResult:
        capabilities = [item.summary() for item in self.runtime.registry.list_all()]
        messages = [
            {
                "role": "system",
                "content": BRAIN_SYSTEM_PROMPT.format(business_context=self.business_context),
            },
            {"role": "user", "content": brain_user_prompt(capabilities, message, channel, caller)},
        ]
        response, _, _ = await self.router.generate(
            messages, temperature=0.3, max_tokens=self.max_tokens
        )
        text = response.text
        decoded = decode_json_object(text)
        try:
            decision = Decision.model_validate(decoded or {})
        except ValidationError:
            logger.warning("Undecodable brain decision, responding with raw text")
            return BrainResult(Decision(action="respond", response=text), text)

        logger.info("Brain decision: %s", decision.action)
        return BrainResult(decision, await self._execute(decision))

    async def _execute(self, decision: Decision) -> str:
        if decision.action == "execute_capability":
            if not decision.capability:
                return "No capability named in the decision."
            return await self.runtime.invoke(decision.capability, decision.arguments)

        if decision.action == "create_capability":
            if decision.new_capability is None:
                return "No capability specification provided."
            try:
                created = await self.factory.create(decision.new_capability)
            except SynthesisError as exc:
                logger.warning("Brain capability synthesis failed: %s", exc)
                return f"Could not create capability {decision.new_capability.name}: {exc}"
            return await self.runtime.invoke(created.name, decision.arguments)

        if decision.action == "escalate":
            reason = decision.reason or "unspecified"
            await self.notifier.notify(f"ESCALATION: {reason}")
            return (
                f"I've escalated this to our operations team: {reason}. "
                "They'll follow up shortly."
            )

        return decision.response or DEFAULT_RESPONSE
