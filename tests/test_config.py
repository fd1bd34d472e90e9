import pytest

from linguachat.config import ConfigError, load_settings


class TestLoadSettings:
    """Unit tests for environment-driven settings."""

    @pytest.fixture(autouse=True)
    def base_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
        for name in (
            "ENV",
            "COMMIT_HASH",
            "PORT",
            "TRANSLATION_TIMEOUT_SECONDS",
            "SEND_TIMEOUT_SECONDS",
            "CONVERSATION_UPDATE_ATTEMPTS",
            "LLM_MODEL",
        ):
            monkeypatch.delenv(name, raising=False)

    def test_defaults(self) -> None:
        settings = load_settings()
        assert settings.port == 8000
        assert settings.translation_timeout_seconds == 8.0
        assert settings.send_timeout_seconds == 20.0
        assert settings.conversation_update_attempts == 3
        assert settings.llm_model == "google/gemini-2.0-flash-001"
        assert settings.is_prod is False

    def test_missing_database_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "")
        with pytest.raises(ConfigError, match="DATABASE_URL"):
            load_settings()

    def test_prod_requires_commit_hash(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ENV", "prod")
        with pytest.raises(ConfigError, match="COMMIT_HASH"):
            load_settings()

        monkeypatch.setenv("COMMIT_HASH", "abc123")
        settings = load_settings()
        assert settings.is_prod
        assert settings.commit_hash == "abc123"

    @pytest.mark.parametrize("value", ["0", "-1", "soon"])
    def test_invalid_timeout(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("SEND_TIMEOUT_SECONDS", value)
        with pytest.raises(ConfigError, match="SEND_TIMEOUT_SECONDS"):
            load_settings()

    def test_invalid_attempts(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONVERSATION_UPDATE_ATTEMPTS", "2.5")
        with pytest.raises(ConfigError, match="integer"):
            load_settings()
