"""Tests for run configuration loading."""

import pytest
from pydantic import ValidationError

ENV_VARS = (
    "SPAMCOUNT_TIMEOUT",
    "SPAMCOUNT_DAYS",
    "SPAMCOUNT_DEBUG",
    "SPAMCOUNT_LABEL",
    "SPAMCOUNT_PAGE_SIZE",
    "SPAMCOUNT_QUEUE_CAPACITY",
    "SPAMCOUNT_REQUEST_TIMEOUT",
    "SPAMCOUNT_TIMEZONE",
    "CREDENTIALS_FILE",
    "TOKEN_FILE",
    "LOG_FORMAT",
    "SERVICE_NAME",
    "SERVICE_VERSION",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestSpamCountConfig:
    """Tests for SpamCountConfig."""

    def test_defaults(self) -> None:
        """Test defaults match the documented CLI defaults."""
        from spamcount_common.config import SpamCountConfig

        config = SpamCountConfig.from_env()

        assert config.timeout_seconds == 60
        assert config.lookback_days == 30
        assert config.debug is False
        assert config.label == "SPAM"
        assert config.page_size == 100
        assert config.queue_capacity == 200
        assert config.credentials_file == "credentials.json"
        assert config.token_file == "token.json"
        assert config.timezone is None
        assert config.log_format == "text"
        assert config.log_level == "INFO"

    def test_backoff_defaults(self) -> None:
        """Test backoff starts at 0.5s, grows by 1.5 and caps at 60s."""
        from spamcount_common.config import SpamCountConfig

        backoff = SpamCountConfig().backoff

        assert backoff.initial_interval == 0.5
        assert backoff.multiplier == 1.5
        assert backoff.max_interval == 60.0
        assert backoff.randomization_factor == 0.5
        assert backoff.max_elapsed is None

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test environment variables populate the config."""
        from spamcount_common.config import SpamCountConfig

        monkeypatch.setenv("SPAMCOUNT_TIMEOUT", "120")
        monkeypatch.setenv("SPAMCOUNT_DAYS", "7")
        monkeypatch.setenv("SPAMCOUNT_DEBUG", "true")
        monkeypatch.setenv("SPAMCOUNT_TIMEZONE", "Europe/Berlin")
        monkeypatch.setenv("LOG_FORMAT", "JSON")
        monkeypatch.setenv("SERVICE_NAME", "spamcount-nightly")

        config = SpamCountConfig.from_env()

        assert config.timeout_seconds == 120
        assert config.lookback_days == 7
        assert config.debug is True
        assert config.log_level == "DEBUG"
        assert config.timezone == "Europe/Berlin"
        assert config.log_format == "json"
        assert config.service.name == "spamcount-nightly"

    def test_overrides_win_and_none_is_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test explicit overrides beat the environment unless they are None."""
        from spamcount_common.config import SpamCountConfig

        monkeypatch.setenv("SPAMCOUNT_DAYS", "7")
        monkeypatch.setenv("SPAMCOUNT_TIMEOUT", "15")

        config = SpamCountConfig.from_env(lookback_days=3, timeout_seconds=None)

        assert config.lookback_days == 3
        assert config.timeout_seconds == 15

    @pytest.mark.parametrize(
        "overrides",
        [
            {"timeout_seconds": 0},
            {"lookback_days": -1},
            {"page_size": 501},
            {"queue_capacity": 0},
            {"log_format": "xml"},
        ],
    )
    def test_rejects_invalid_values(self, overrides: dict) -> None:
        """Test out-of-range values fail validation."""
        from spamcount_common.config import SpamCountConfig

        with pytest.raises(ValidationError):
            SpamCountConfig.from_env(**overrides)

    def test_rejects_non_numeric_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a garbled numeric env var fails validation."""
        from spamcount_common.config import SpamCountConfig

        monkeypatch.setenv("SPAMCOUNT_TIMEOUT", "soon")

        with pytest.raises(ValidationError):
            SpamCountConfig.from_env()
