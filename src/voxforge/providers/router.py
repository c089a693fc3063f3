"""Primary/fallback lanes over the reasoning providers."""

import logging

from voxforge.errors import ProviderError
from voxforge.providers.base import Messages, ModelProvider, ModelResponse

logger = logging.getLogger(__name__)


class ProviderRouter:
    def __init__(self, primary: ModelProvider, fallback: ModelProvider | None = None) -> None:
        self.primary = primary
        self.fallback = fallback

    def lanes(self) -> list[tuple[str, ModelProvider]]:
        lanes = [("primary", self.primary)]
        if self.fallback is not None:
            lanes.append(("fallback", self.fallback))
        return lanes

    async def generate(
        self,
        messages: Messages,
        temperature: float = 0.7,
        max_tokens: int = 4096,
    ) -> tuple[ModelResponse, str, str | None]:
        """Return ``(response, lane, primary_error)`` from the first lane that answers."""
        errors: dict[str, str] = {}
        cause: Exception | None = None
        for lane, provider in self.lanes():
            try:
                response = await provider.generate(messages, temperature, max_tokens)
            except Exception as exc:
                errors[lane] = f"{type(exc).__name__}: {exc}"
                logger.warning("Reasoning lane %s failed: %s", lane, errors[lane])
                cause = exc
                continue
            return response, lane, errors.get("primary")

        if len(errors) == 1:
            raise ProviderError(errors["primary"], retryable=True) from cause
        detail = ", ".join(f"{lane}={error}" for lane, error in errors.items())
        raise ProviderError(f"all providers failed: {detail}", retryable=True) from cause

    async def health(self) -> dict[str, bool]:
        return {lane: await provider.health_check() for lane, provider in self.lanes()}
