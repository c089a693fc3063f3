"""Capability registry: the name-keyed store of callable capabilities."""

import logging

from voxforge.capabilities.types import CapabilityDefinition

logger = logging.getLogger(__name__)


class CapabilityRegistry:
    """Single mapping from capability name to definition.

    Re-registering a name overwrites the previous definition. Mutations are not
    locked; callers serialize them (the pipeline runner does so per profile).
    """

    def __init__(self) -> None:
        self._capabilities: dict[str, CapabilityDefinition] = {}

    def __len__(self) -> int:
        return len(self._capabilities)

    def __contains__(self, name: object) -> bool:
        return name in self._capabilities

    def register(self, definition: CapabilityDefinition) -> None:
        replaced = definition.name in self._capabilities
        self._capabilities[definition.name] = definition
        logger.info(
            "Registered capability %s (%s)%s",
            definition.name,
            definition.origin.value,
            " replacing previous definition" if replaced else "",
        )

    def lookup(self, name: str) -> CapabilityDefinition | None:
        return self._capabilities.get(name)

    def list_all(self) -> list[CapabilityDefinition]:
        return list(self._capabilities.values())

    def list_synthesized(self) -> list[CapabilityDefinition]:
        return [item for item in self._capabilities.values() if item.is_synthesized]

    def clear_synthesized(self) -> list[str]:
        removed = [item.name for item in self._capabilities.values() if item.is_synthesized]
        for name in removed:
            del self._capabilities[name]
            logger.info("Removed synthesized capability %s", name)
        return removed

    def schemas(self) -> list[dict[str, object]]:
        return [
            {
                "name": item.name,
                "description": item.description,
                "parameters": item.parameter_schema(),
                "origin": item.origin.value,
            }
            for item in self._capabilities.values()
        ]
