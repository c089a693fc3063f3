"""Shared slowapi limiter for inbound webhooks."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from voxforge.config import get_settings

limiter = Limiter(key_func=get_remote_address)


def webhook_rate() -> str:
    return f"{max(1, int(get_settings().rate_limit_webhooks_per_minute))}/minute"
