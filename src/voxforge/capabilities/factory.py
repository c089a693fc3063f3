"""Creates synthesized capabilities and publishes them to the voice provider."""

from __future__ import annotations

import logging

from voxforge.capabilities.context import TrustedContext
from voxforge.capabilities.registry import CapabilityRegistry
from voxforge.capabilities.synthesis import synthesize
from voxforge.capabilities.types import CapabilityDefinition, CapabilitySpec
from voxforge.channels.operator import OperatorNotifier
from voxforge.config import Settings
from voxforge.errors import VoxforgeError
from voxforge.voice.client import VoiceClient

logger = logging.getLogger(__name__)

TOOL_CALLS_PATH = "/voice/tool-calls"


class CapabilityFactory:
    def __init__(
        self,
        settings: Settings,
        registry: CapabilityRegistry,
        context: TrustedContext,
        voice: VoiceClient,
        notifier: OperatorNotifier,
    ) -> None:
        self._settings = settings
        self.registry = registry
        self.context = context
        self.voice = voice
        self.notifier = notifier

    @property
    def publishing_enabled(self) -> bool:
        return bool(
            self._settings.public_server_url.strip() and self._settings.voice_assistant_id.strip()
        )

    async def create(self, spec: CapabilitySpec) -> CapabilityDefinition:
        """Synthesize and register a capability; raises SynthesisError on an invalid program."""
        definition = synthesize(spec, self.context, max_steps=self._settings.synthesis_max_steps)
        self.registry.register(definition)
        if self.publishing_enabled:
            await self._publish(definition)
        try:
            await self.notifier.notify(
                f'New capability created: "{definition.name}" - {definition.description}'
            )
        except VoxforgeError as exc:
            logger.warning("Operator notification for %s failed: %s", definition.name, exc)
        return definition

    async def _publish(self, definition: CapabilityDefinition) -> None:
        server_url = self._settings.public_server_url.rstrip("/") + TOOL_CALLS_PATH
        function = {
            "name": definition.name,
            "description": definition.description,
            "parameters": definition.parameter_schema(),
        }
        try:
            tool_id = await self.voice.create_tool(function, server_url)
            await self.voice.add_tool_to_assistant(self._settings.voice_assistant_id, tool_id)
        except VoxforgeError as exc:
            logger.error("Failed to publish capability %s: %s", definition.name, exc)
            return
        logger.info("Capability %s attached to assistant as tool %s", definition.name, tool_id)
