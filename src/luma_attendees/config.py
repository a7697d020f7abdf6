"""Configuration management using Pydantic settings with optional file persistence."""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Paths ---

APP_NAME = "luma-attendee-scraper"


def get_config_dir() -> Path:
    """Get the configuration directory (e.g. ~/.config/luma-attendee-scraper)."""
    if os.name == "nt":
        base = Path(os.environ.get("APPDATA", Path.home() / ".config")).expanduser()
    else:
        base = Path("~/.config").expanduser()
    return base / APP_NAME


CONFIG_FILE = get_config_dir() / "config.json"


def load_config_file() -> dict[str, Any]:
    """Load settings from the JSON config file if it exists."""
    if not CONFIG_FILE.exists():
        return {}

    try:
        text = CONFIG_FILE.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        return json.loads(text)
    except (OSError, json.JSONDecodeError):
        return {}


def save_config_file(config_data: dict[str, Any]) -> None:
    """Save settings to the JSON config file."""
    CONFIG_FILE.parent.mkdir(parents=True, exist_ok=True)
    CONFIG_FILE.write_text(json.dumps(config_data, indent=2), encoding="utf-8")


class LumaSettings(BaseSettings):
    """Account and site configuration."""

    model_config = SettingsConfigDict(env_prefix="LUMA_", env_file=".env", extra="ignore")

    email: Optional[str] = Field(default=None, description="Login email (skips the email prompt)")
    base_url: str = Field(default="https://lu.ma", description="Site root used for sign-in and relative event links")
    profile_base_url: str = Field(default="https://lu.ma", description="Root for derived guest profile links")


class BrowserSettings(BaseSettings):
    """Browser configuration."""

    model_config = SettingsConfigDict(env_prefix="LUMA_BROWSER_")

    # The login flow needs a visible window for the OTP step by default.
    headless: bool = Field(default=False)
    cdp_url: Optional[str] = Field(default=None, description="Attach to an already running browser via CDP")
    proxy_server: Optional[str] = Field(default=None, description="Proxy server URL (e.g., http://host:8080)")
    proxy_bypass: Optional[str] = Field(default=None, description="Comma-separated hosts to bypass proxy")
    settle_delay: float = Field(default=1.0, description="Seconds to wait after a page reports it has loaded")
    typing_delay: float = Field(default=0.1, description="Seconds between simulated keystrokes")


WaitMode = Literal["interactive", "bounded"]


class WaitSettings(BaseSettings):
    """Timeout policy for selector and navigation waits.

    In ``interactive`` mode the waits that depend on the operator (sign-in form,
    OTP entry, login completion) never time out, so a CAPTCHA or 2FA prompt can be
    solved by hand. ``bounded`` mode applies ``operator_timeout`` to those too.
    """

    model_config = SettingsConfigDict(env_prefix="LUMA_WAIT_")

    mode: WaitMode = Field(default="interactive")
    operator_timeout: float = Field(default=600.0, description="Bound for operator-facing waits in bounded mode")
    selector_timeout: float = Field(default=60.0, description="Bound for automated element waits")
    navigation_timeout: float = Field(default=60.0, description="Bound for page loads")
    poll_interval: float = Field(default=0.25, description="Polling interval for DOM conditions")

    def operator_wait(self) -> float | None:
        """Timeout for operator-facing waits; None means wait indefinitely."""
        if self.mode == "interactive":
            return None
        return self.operator_timeout


class ScrollSettings(BaseSettings):
    """Auto-scroll convergence configuration."""

    model_config = SettingsConfigDict(env_prefix="LUMA_SCROLL_")

    interval: float = Field(default=1.5, description="Seconds between height polls")
    stable_reads: int = Field(default=1, ge=1, description="Consecutive unchanged heights that end scrolling")
    max_duration: float = Field(default=300.0, description="Wall-clock bound before scrolling is abandoned")


class CaptureSettings(BaseSettings):
    """Guest-list endpoint capture configuration."""

    model_config = SettingsConfigDict(env_prefix="LUMA_CAPTURE_")

    guest_list_api_url: str = Field(default="https://api.lu.ma/event/get-guest-list")
    ticket_query_key: str = Field(default="ticket_key")
    pagination_param: str = Field(default="pagination_limit")
    endpoint_timeout: float = Field(default=30.0, description="Seconds to wait for the guest-list request after the click")
    fetch_timeout: float = Field(default=60.0, description="Timeout for the direct guest-list fetch")


class OutputSettings(BaseSettings):
    """Export configuration."""

    model_config = SettingsConfigDict(env_prefix="LUMA_OUTPUT_")

    directory: str = Field(default=".")
    write_xlsx: bool = Field(default=True)
    write_json: bool = Field(default=True)


LogFormat = Literal["console", "json"]


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LUMA_LOG_")

    level: str = Field(default="INFO")
    format: LogFormat = Field(default="console")


class AppSettings(BaseSettings):
    """Root application settings.

    Priority: Environment Variables > Config File > Defaults
    """

    model_config = SettingsConfigDict(env_prefix="LUMA_APP_", extra="ignore")

    luma: LumaSettings = Field(default_factory=LumaSettings)
    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    wait: WaitSettings = Field(default_factory=WaitSettings)
    scroll: ScrollSettings = Field(default_factory=ScrollSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    output: OutputSettings = Field(default_factory=OutputSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    def save(self) -> Path:
        """Save current configuration to file (excluding the login email)."""
        data = self.model_dump(mode="json", exclude_none=True)
        data.get("luma", {}).pop("email", None)
        save_config_file(data)
        return CONFIG_FILE

    def get_output_dir(self) -> Path:
        """Get the output directory, creating if needed."""
        path = Path(self.output.directory).expanduser()
        path.mkdir(parents=True, exist_ok=True)
        return path


def _load_settings() -> AppSettings:
    """Load settings with file config as base, env vars overlay."""
    file_data = load_config_file()
    settings = AppSettings()
    if not file_data:
        return settings

    # Nested settings read their own env vars; file values only fill what env left at defaults.
    merged: dict[str, Any] = {}
    for section, values in file_data.items():
        current = getattr(settings, section, None)
        if current is None or not isinstance(values, dict):
            continue
        explicit = current.model_fields_set
        section_data = current.model_dump()
        for key, value in values.items():
            if key not in explicit:
                section_data[key] = value
        merged[section] = type(current)(**section_data)
    return settings.model_copy(update=merged)


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Get the cached application settings."""
    return _load_settings()


def reload_settings() -> AppSettings:
    """Drop cached settings and load them again (env changes take effect)."""
    get_settings.cache_clear()
    return get_settings()
