"""Capability runtime: the single call site for capability handlers."""

import json
import logging
from typing import Any

from voxforge.capabilities.registry import CapabilityRegistry

logger = logging.getLogger(__name__)


class CapabilityRuntime:
    def __init__(self, registry: CapabilityRegistry) -> None:
        self.registry = registry

    async def invoke(self, name: str, arguments: dict[str, Any] | None = None) -> str:
        """Run a capability and always return a string.

        Handler failures are converted into an error sentence so nothing raised
        inside a capability reaches the caller.
        """
        capability = self.registry.lookup(name)
        if capability is None:
            logger.warning("Capability not found: %s", name)
            return f'Capability "{name}" not found.'
        args = arguments if isinstance(arguments, dict) else {}
        try:
            result = await capability.handler(args)
        except Exception as exc:
            logger.warning("Capability %s failed: %s", name, exc)
            return f"Error executing {name}: {exc}"
        if isinstance(result, str):
            return result
        return json.dumps(result, default=str)
