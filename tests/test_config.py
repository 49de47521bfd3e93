"""Tests for Settings."""

import pytest

from commentlens.config import Settings


class TestSettingsFromEnv:
    """Tests for Settings.from_env()."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for name in (
            "YOUTUBE_API_KEY",
            "FACEBOOK_PAGE_TOKEN",
            "COMMENTLENS_USE_PROXIES",
            "COMMENTLENS_DIRECT_TIMEOUT",
            "COMMENTLENS_PROXY_TIMEOUT",
            "COMMENTLENS_API_TIMEOUT",
        ):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.youtube_api_key is None
        assert settings.facebook_page_token is None
        assert settings.use_proxies is True
        assert settings.direct_timeout == 8.0
        assert settings.proxy_timeout == 25.0
        assert settings.api_timeout == 30.0

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("YOUTUBE_API_KEY", "yt")
        monkeypatch.setenv("FACEBOOK_PAGE_TOKEN", "fb")
        monkeypatch.setenv("COMMENTLENS_USE_PROXIES", "false")
        monkeypatch.setenv("COMMENTLENS_DIRECT_TIMEOUT", "3.5")
        monkeypatch.setenv("COMMENTLENS_API_TIMEOUT", "12")

        settings = Settings.from_env()

        assert settings.youtube_api_key == "yt"
        assert settings.facebook_page_token == "fb"
        assert settings.use_proxies is False
        assert settings.direct_timeout == 3.5
        assert settings.api_timeout == 12.0

    def test_empty_key_is_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("YOUTUBE_API_KEY", "")
        assert Settings.from_env().youtube_api_key is None

    def test_bad_number(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("COMMENTLENS_PROXY_TIMEOUT", "soon")
        with pytest.raises(ValueError, match="COMMENTLENS_PROXY_TIMEOUT"):
            Settings.from_env()
