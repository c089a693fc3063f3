"""The trusted context exposed to capability handlers.

It is the only surface a synthesized capability can reach: no registry, no
settings, no other capabilities.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx

from voxforge.errors import CapabilityError

SendMessage = Callable[[str, str], Awaitable[dict[str, Any]]]
NotifyOperator = Callable[[str], Awaitable[None]]
TriggerAutomation = Callable[[dict[str, Any]], Awaitable[Any]]
HttpRequest = Callable[[str, str, dict[str, str], Any], Awaitable[str]]


@dataclass(slots=True, frozen=True)
class TrustedContext:
    send_message: SendMessage
    notify_operator: NotifyOperator
    trigger_automation: TriggerAutomation
    http_request: HttpRequest


def make_http_request(
    timeout_seconds: float,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> HttpRequest:
    """Build the generic outbound HTTP call used by capability programs."""

    async def http_request(
        method: str,
        url: str,
        headers: dict[str, str],
        body: Any,
    ) -> str:
        kwargs: dict[str, Any] = {"headers": headers}
        if isinstance(body, dict | list):
            kwargs["json"] = body
        elif isinstance(body, str) and body:
            kwargs["content"] = body.encode("utf-8")
        try:
            async with httpx.AsyncClient(timeout=timeout_seconds, transport=transport) as client:
                response = await client.request(method.upper(), url, **kwargs)
        except httpx.HTTPError as exc:
            raise CapabilityError(f"{method.upper()} {url} failed: {exc}") from exc
        if response.status_code >= 400:
            raise CapabilityError(
                f"{method.upper()} {url} returned {response.status_code}: {response.text[:200]}"
            )
        return response.text

    return http_request
