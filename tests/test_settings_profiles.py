from __future__ import annotations

from todo_app.core.config import Settings


def test_environment_profiles_apply_defaults() -> None:
    dev = Settings(environment="development")
    assert dev.environment == "development"
    assert dev.log_level == "DEBUG"
    assert dev.reload is True
    assert dev.db_auto_create is True
    assert dev.session_https_only is False

    test_profile = Settings(environment="test")
    assert test_profile.environment == "test"
    assert test_profile.log_level == "WARNING"
    assert test_profile.reload is False
    assert test_profile.db_auto_create is False
    assert test_profile.password_hash_rounds == 4

    ci_profile = Settings(environment="ci")
    assert ci_profile.environment == "ci"
    assert ci_profile.log_level == "INFO"
    assert ci_profile.reload is False
    assert ci_profile.session_https_only is True


def test_environment_aliases_are_normalised() -> None:
    assert Settings(environment="DEV").environment == "development"
    assert Settings(environment="testing").environment == "test"
    assert Settings(environment="staging").environment == "development"


def test_environment_profile_respects_explicit_overrides(monkeypatch) -> None:
    monkeypatch.setenv("TODO_LOG_LEVEL", "error")
    overridden = Settings(environment="test")
    assert overridden.log_level == "ERROR"

    monkeypatch.delenv("TODO_LOG_LEVEL", raising=False)
    monkeypatch.setenv("TODO_DB_AUTO_CREATE", "true")
    assert Settings(environment="test").db_auto_create is True


def test_comma_separated_cors_and_value_guards(monkeypatch) -> None:
    monkeypatch.setenv("TODO_CORS_ALLOW_ORIGINS", "https://a.example, https://b.example,")
    settings = Settings(
        environment="ci",
        db_timeout_seconds=-5,
        password_hash_rounds=99,
        session_same_site="Bogus",
    )
    assert settings.cors_allow_origins == ["https://a.example", "https://b.example"]
    assert settings.db_timeout_seconds == 10.0
    assert settings.password_hash_rounds == 31
    assert settings.session_same_site == "lax"
