"""Tests for settings, env overrides and the wait policy."""

import json
import os

import pytest

from luma_attendees import config as config_module
from luma_attendees.config import (
    AppSettings,
    BrowserSettings,
    CaptureSettings,
    LumaSettings,
    ScrollSettings,
    WaitSettings,
    get_settings,
    reload_settings,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the caller's environment and config file."""
    for var in list(os.environ.keys()):
        if var.startswith("LUMA_"):
            monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config" / "config.json")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaults:
    def test_site_defaults(self):
        settings = LumaSettings()
        assert settings.email is None
        assert settings.base_url == "https://lu.ma"
        assert settings.profile_base_url == "https://lu.ma"

    def test_browser_defaults(self):
        settings = BrowserSettings()
        assert settings.headless is False
        assert settings.typing_delay == 0.1

    def test_capture_defaults(self):
        settings = CaptureSettings()
        assert settings.guest_list_api_url == "https://api.lu.ma/event/get-guest-list"
        assert settings.ticket_query_key == "ticket_key"
        assert settings.pagination_param == "pagination_limit"

    def test_scroll_defaults(self):
        settings = ScrollSettings()
        assert settings.interval == 1.5
        assert settings.stable_reads == 1
        assert settings.max_duration == 300.0

    def test_stable_reads_must_be_positive(self):
        with pytest.raises(ValueError):
            ScrollSettings(stable_reads=0)


class TestEnvOverrides:
    """Environment variables override defaults per section."""

    def test_email_from_env(self, monkeypatch):
        monkeypatch.setenv("LUMA_EMAIL", "ann@example.com")
        assert LumaSettings().email == "ann@example.com"

    def test_browser_from_env(self, monkeypatch):
        monkeypatch.setenv("LUMA_BROWSER_HEADLESS", "true")
        monkeypatch.setenv("LUMA_BROWSER_CDP_URL", "http://localhost:9222")
        settings = BrowserSettings()
        assert settings.headless is True
        assert settings.cdp_url == "http://localhost:9222"

    def test_wait_mode_from_env(self, monkeypatch):
        monkeypatch.setenv("LUMA_WAIT_MODE", "bounded")
        assert WaitSettings().mode == "bounded"

    def test_invalid_wait_mode(self, monkeypatch):
        monkeypatch.setenv("LUMA_WAIT_MODE", "forever")
        with pytest.raises(ValueError):
            WaitSettings()

    def test_nested_sections_read_env(self, monkeypatch):
        monkeypatch.setenv("LUMA_OUTPUT_DIRECTORY", "exports")
        assert AppSettings().output.directory == "exports"


class TestWaitPolicy:
    def test_interactive_waits_indefinitely(self):
        assert WaitSettings(mode="interactive").operator_wait() is None

    def test_bounded_uses_operator_timeout(self):
        assert WaitSettings(mode="bounded", operator_timeout=42).operator_wait() == 42


class TestConfigFile:
    """File values fill what the environment left at defaults."""

    def test_file_values_applied(self):
        config_module.CONFIG_FILE.parent.mkdir(parents=True)
        config_module.CONFIG_FILE.write_text(json.dumps({"wait": {"selector_timeout": 5}}), encoding="utf-8")

        assert get_settings().wait.selector_timeout == 5

    def test_env_beats_file(self, monkeypatch):
        config_module.CONFIG_FILE.parent.mkdir(parents=True)
        config_module.CONFIG_FILE.write_text(json.dumps({"wait": {"selector_timeout": 5}}), encoding="utf-8")
        monkeypatch.setenv("LUMA_WAIT_SELECTOR_TIMEOUT", "9")

        assert get_settings().wait.selector_timeout == 9

    def test_corrupt_file_ignored(self):
        config_module.CONFIG_FILE.parent.mkdir(parents=True)
        config_module.CONFIG_FILE.write_text("{not json", encoding="utf-8")

        assert get_settings().wait.selector_timeout == 60

    def test_save_excludes_email(self):
        settings = AppSettings(luma=LumaSettings(email="ann@example.com"))
        path = settings.save()
        data = json.loads(path.read_text(encoding="utf-8"))

        assert "email" not in data["luma"]
        assert data["capture"]["pagination_param"] == "pagination_limit"

    def test_reload_picks_up_env(self, monkeypatch):
        assert get_settings().logging.level == "INFO"
        monkeypatch.setenv("LUMA_LOG_LEVEL", "DEBUG")
        assert get_settings().logging.level == "INFO"
        assert reload_settings().logging.level == "DEBUG"

    def test_output_dir_created(self, tmp_path):
        settings = AppSettings()
        settings.output.directory = str(tmp_path / "out")
        assert settings.get_output_dir().is_dir()
