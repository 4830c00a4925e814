"""Tests for settings and credential loading."""

import pytest

from voice_converter.config import ConfigurationError, load_credentials


def test_load_credentials_returns_tokens(make_settings):
    """Both tokens present yields Credentials with no channel filter."""
    creds = load_credentials(make_settings())
    assert creds.bot_token == "xoxb-test"
    assert creds.privileged_token == "xoxp-test"
    assert creds.channel_filter is None


def test_load_credentials_with_channel_filter(make_settings):
    """A configured channel name becomes the channel filter."""
    creds = load_credentials(make_settings(slack_channel_name="times-me"))
    assert creds.channel_filter == "times-me"


def test_missing_bot_token_raises(make_settings):
    """A missing bot token is a configuration error naming the key."""
    with pytest.raises(ConfigurationError, match="SLACK_BOT_TOKEN"):
        load_credentials(make_settings(slack_bot_token=""))


def test_missing_privileged_token_raises(make_settings):
    """A missing user token is a configuration error naming the key."""
    with pytest.raises(ConfigurationError, match="SLACK_USER_TOKEN"):
        load_credentials(make_settings(slack_user_token=""))


def test_defaults_match_reference_policy(make_settings, monkeypatch: pytest.MonkeyPatch):
    """Dedup window, recheck delay, and retry bound default to the reference policy."""
    for name in ("DEDUP_TTL_SECONDS", "RECHECK_DELAY_SECONDS", "MAX_RECHECKS", "EXTERNAL_SPEECH", "CLEANUP_TARGET"):
        monkeypatch.delenv(name, raising=False)
    settings = make_settings()
    assert settings.dedup_ttl_seconds == 300
    assert settings.recheck_delay_seconds == 10.0
    assert settings.max_rechecks == 6
    assert settings.external_speech == "off"
    assert settings.cleanup_target == "file"


def test_settings_from_environment(make_settings, monkeypatch: pytest.MonkeyPatch):
    """Settings read upper-case environment variables."""
    monkeypatch.setenv("CLEANUP_TARGET", "message")
    monkeypatch.setenv("SPEECH_ALTERNATIVE_LANGUAGE_CODES", '["en-US", "en-GB"]')
    settings = make_settings()
    assert settings.cleanup_target == "message"
    assert settings.speech_alternative_language_codes == ["en-US", "en-GB"]
