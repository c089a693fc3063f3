import pytest

from voxforge.config import DEFAULT_BUSINESS_CONTEXT, get_settings, validate_settings_for_env


def _prod_env() -> dict[str, str]:
    return {
        "APP_ENV": "prod",
        "VOICE_API_KEY": "voice-key",
        "VOICE_ASSISTANT_ID": "asst-1",
        "PUBLIC_SERVER_URL": "https://agent.example.com",
        "PRIMARY_PROVIDER": "anthropic",
        "ANTHROPIC_API_KEY": "llm-key",
    }


def test_validate_settings_prod_ok(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in _prod_env().items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    validate_settings_for_env(get_settings())


def test_validate_settings_prod_missing_required(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in _prod_env().items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("VOICE_API_KEY", "")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    get_settings.cache_clear()
    with pytest.raises(ValueError) as excinfo:
        validate_settings_for_env(get_settings())
    message = str(excinfo.value)
    assert "ANTHROPIC_API_KEY" in message
    assert "VOICE_API_KEY" in message


def test_validate_settings_prod_requires_https(monkeypatch: pytest.MonkeyPatch) -> None:
    for key, value in _prod_env().items():
        monkeypatch.setenv(key, value)
    monkeypatch.setenv("PUBLIC_SERVER_URL", "http://agent.example.com")
    get_settings.cache_clear()
    with pytest.raises(ValueError, match="https required"):
        validate_settings_for_env(get_settings())


def test_validate_settings_dev_is_lenient(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("VOICE_API_KEY", "")
    get_settings.cache_clear()
    validate_settings_for_env(get_settings())


def test_trigger_reasons_are_parsed(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("IMPROVEMENT_TRIGGER_REASONS", " customer-busy, ,silence-timed-out ")
    get_settings.cache_clear()
    assert get_settings().trigger_reasons == frozenset({"customer-busy", "silence-timed-out"})


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CALLBACK_SETTLE_SECONDS")
    get_settings.cache_clear()
    settings = get_settings()
    assert settings.callback_settle_seconds == 3.0
    assert "customer-did-not-answer" in settings.trigger_reasons
    assert "assistant-ended-call" not in settings.trigger_reasons
    assert settings.business_context == DEFAULT_BUSINESS_CONTEXT
    assert settings.automation_configured is False
