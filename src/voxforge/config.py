"""Application configuration contract."""

import logging
import warnings
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_BUSINESS_CONTEXT = (
    "Ruya Logistics, a freight forwarding company in Dubai that moves containers "
    "from Jebel Ali port to warehouses."
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = Field(alias="APP_ENV", default="dev")
    log_level: str = Field(alias="LOG_LEVEL", default="INFO")
    business_context: str = Field(alias="BUSINESS_CONTEXT", default=DEFAULT_BUSINESS_CONTEXT)

    # Security: bind host defaults to loopback
    bind_host: str = Field(alias="BIND_HOST", default="127.0.0.1")
    bind_port: int = Field(alias="BIND_PORT", default=3001)
    public_server_url: str = Field(alias="PUBLIC_SERVER_URL", default="")

    voice_api_base_url: str = Field(alias="VOICE_API_BASE_URL", default="https://api.vapi.ai")
    voice_api_key: str = Field(alias="VOICE_API_KEY", default="")
    voice_assistant_id: str = Field(alias="VOICE_ASSISTANT_ID", default="")
    voice_phone_number_id: str = Field(alias="VOICE_PHONE_NUMBER_ID", default="")
    voice_timeout_seconds: int = Field(alias="VOICE_TIMEOUT_SECONDS", default=30)

    whapi_base_url: str = Field(alias="WHAPI_BASE_URL", default="https://gate.whapi.cloud")
    whapi_token: str = Field(alias="WHAPI_TOKEN", default="")
    operator_contact: str = Field(alias="OPERATOR_CONTACT", default="")

    automation_api_url: str = Field(alias="AUTOMATION_API_URL", default="")
    automation_api_key: str = Field(alias="AUTOMATION_API_KEY", default="")
    automation_webhook_url: str = Field(alias="AUTOMATION_WEBHOOK_URL", default="")
    automation_timeout_seconds: int = Field(alias="AUTOMATION_TIMEOUT_SECONDS", default=30)

    primary_provider: str = Field(alias="PRIMARY_PROVIDER", default="anthropic")
    anthropic_base_url: str = Field(
        alias="ANTHROPIC_BASE_URL", default="https://api.anthropic.com/v1"
    )
    anthropic_api_key: str = Field(alias="ANTHROPIC_API_KEY", default="")
    anthropic_model: str = Field(alias="ANTHROPIC_MODEL", default="claude-sonnet-4-5-20250929")
    openai_base_url: str = Field(alias="OPENAI_BASE_URL", default="https://api.openai.com/v1")
    openai_api_key: str = Field(alias="OPENAI_API_KEY", default="")
    openai_model: str = Field(alias="OPENAI_MODEL", default="gpt-4o")
    reasoning_max_tokens: int = Field(alias="REASONING_MAX_TOKENS", default=4096)
    reasoning_timeout_seconds: int = Field(alias="REASONING_TIMEOUT_SECONDS", default=120)

    improvement_trigger_reasons: str = Field(
        alias="IMPROVEMENT_TRIGGER_REASONS",
        default="customer-ended-call,customer-did-not-answer,customer-busy",
    )
    callback_settle_seconds: float = Field(alias="CALLBACK_SETTLE_SECONDS", default=3.0)
    synthesis_max_steps: int = Field(alias="SYNTHESIS_MAX_STEPS", default=16)
    synthesis_http_timeout_seconds: int = Field(
        alias="SYNTHESIS_HTTP_TIMEOUT_SECONDS", default=10
    )
    pipeline_shutdown_timeout_seconds: int = Field(
        alias="PIPELINE_SHUTDOWN_TIMEOUT_SECONDS", default=30
    )

    # Rate limiting
    rate_limit_webhooks_per_minute: int = Field(
        alias="RATE_LIMIT_WEBHOOKS_PER_MINUTE", default=60
    )

    @property
    def trigger_reasons(self) -> frozenset[str]:
        return frozenset(
            item.strip() for item in self.improvement_trigger_reasons.split(",") if item.strip()
        )

    @property
    def automation_configured(self) -> bool:
        return bool(self.automation_api_url.strip() and self.automation_api_key.strip())


def _production_problems(settings: Settings) -> list[str]:
    problems = [
        key
        for key, value in (
            ("VOICE_API_KEY", settings.voice_api_key),
            ("VOICE_ASSISTANT_ID", settings.voice_assistant_id),
            ("PUBLIC_SERVER_URL", settings.public_server_url),
            ("PRIMARY_PROVIDER", settings.primary_provider),
        )
        if not value.strip()
    ]
    credential = {"anthropic": settings.anthropic_api_key, "openai": settings.openai_api_key}
    provider = settings.primary_provider.strip().lower()
    if provider in credential and not credential[provider].strip():
        problems.append(f"{provider.upper()}_API_KEY")
    public_url = settings.public_server_url.strip()
    if public_url and not public_url.startswith("https://"):
        problems.append("PUBLIC_SERVER_URL(https required)")
    if not settings.trigger_reasons:
        problems.append("IMPROVEMENT_TRIGGER_REASONS")
    return problems


def validate_settings_for_env(settings: Settings) -> None:
    """Fail fast on an incomplete production configuration; dev and test are lenient."""
    if settings.app_env != "prod":
        return
    if settings.bind_host == "0.0.0.0":
        msg = (
            "BIND_HOST=0.0.0.0 in production exposes the webhooks on every interface; "
            "bind to loopback behind a reverse proxy instead."
        )
        logger.warning(msg)
        warnings.warn(msg, stacklevel=2)
    problems = _production_problems(settings)
    if problems:
        raise ValueError(f"invalid production configuration: {', '.join(sorted(set(problems)))}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
