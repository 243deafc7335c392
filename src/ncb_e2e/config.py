"""
Configuration management for the ncb-e2e suite.

Settings are read from environment variables and an optional ``.env``
file in the working directory, or from a TOML file named by
``E2E_CONFIG_FILE``. All timeouts are in milliseconds, the unit
Playwright uses.
"""

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError, MissingConfigError

ENV_FILE = ".env"


class SiteSettings(BaseSettings):
    """Site under test."""

    model_config = SettingsConfigDict(
        env_prefix="E2E_",
        env_file=ENV_FILE,
        extra="ignore",
    )

    base_url: Optional[str] = Field(
        None, description="Base URL of the site under test"
    )
    email_log_path: str = Field(
        default="/new/development/email-log",
        description="Path of the developer email-log viewer",
    )
    headless: bool = Field(default=True, description="Run browsers headless")
    slow_mo: int = Field(default=0, ge=0, description="Slow motion delay in ms")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate base URL format."""
        if v is None or not v.strip():
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip("/")

    @property
    def email_log_url(self) -> str:
        """Absolute URL of the email-log viewer."""
        if not self.base_url:
            raise MissingConfigError("E2E_BASE_URL")
        return f"{self.base_url}/{self.email_log_path.lstrip('/')}"


class HttpAuthSettings(BaseSettings):
    """HTTP basic auth in front of the staging site."""

    model_config = SettingsConfigDict(
        env_prefix="HTTP_AUTH_",
        env_file=ENV_FILE,
        extra="ignore",
    )

    username: Optional[str] = Field(None, description="Basic auth user")
    password: Optional[str] = Field(None, description="Basic auth password")

    def to_credentials(self) -> Optional[dict[str, str]]:
        """Playwright ``http_credentials`` option, or None when unset."""
        if not self.username:
            return None
        return {"username": self.username, "password": self.password or ""}


class AccountSettings(BaseSettings):
    """Pre-existing customer and business accounts used by login flows."""

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=ENV_FILE,
        extra="ignore",
    )

    customer_login_test_login: Optional[str] = None
    customer_login_test_password: Optional[str] = None
    customer_login_test_full_name: Optional[str] = None
    business_login_test_login: Optional[str] = None
    business_login_test_password: Optional[str] = None
    business_login_test_business_name: Optional[str] = None

    def require_customer(self) -> tuple[str, str, str]:
        """
        Return (login, password, full name) of the customer account.

        Raises:
            MissingConfigError: If any of the three values is unset.
        """
        return (
            _require("CUSTOMER_LOGIN_TEST_LOGIN", self.customer_login_test_login),
            _require("CUSTOMER_LOGIN_TEST_PASSWORD", self.customer_login_test_password),
            _require("CUSTOMER_LOGIN_TEST_FULL_NAME", self.customer_login_test_full_name),
        )

    def require_business(self) -> tuple[str, str, str]:
        """Return (login, password, business name) of the business account."""
        return (
            _require("BUSINESS_LOGIN_TEST_LOGIN", self.business_login_test_login),
            _require("BUSINESS_LOGIN_TEST_PASSWORD", self.business_login_test_password),
            _require(
                "BUSINESS_LOGIN_TEST_BUSINESS_NAME",
                self.business_login_test_business_name,
            ),
        )


class TimeoutSettings(BaseSettings):
    """Upper bounds for every wait the helpers perform (milliseconds)."""

    model_config = SettingsConfigDict(
        env_prefix="E2E_TIMEOUT_",
        env_file=ENV_FILE,
        extra="ignore",
    )

    listing: int = Field(default=15000, gt=0, description="Inbox links to render")
    link: int = Field(default=10000, gt=0, description="A chosen link to be visible")
    new_page: int = Field(default=15000, gt=0, description="New tab after a click")
    navigation: int = Field(default=10000, gt=0, description="Post-click navigation race")
    fallback: int = Field(default=5000, gt=0, description="Root page URL check")
    options: int = Field(default=8000, gt=0, description="Dropdown options to attach")
    enable: int = Field(default=10000, gt=0, description="Dependent field to enable")
    poll_interval: int = Field(default=200, gt=0, description="Enablement poll interval")


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        env_file=ENV_FILE,
        extra="ignore",
    )

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format",
    )
    file: Optional[str] = Field(None, description="Log file path")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {', '.join(valid_levels)}")
        return v_upper


class Settings(BaseSettings):
    """Suite settings aggregating all configuration."""

    model_config = SettingsConfigDict(
        env_prefix="E2E_",
        env_file=ENV_FILE,
        extra="ignore",
    )

    site: SiteSettings = Field(default_factory=SiteSettings)
    http_auth: HttpAuthSettings = Field(default_factory=HttpAuthSettings)
    accounts: AccountSettings = Field(default_factory=AccountSettings)
    timeouts: TimeoutSettings = Field(default_factory=TimeoutSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def live(self) -> bool:
        """True when a site under test is configured."""
        return bool(self.site.base_url)

    @classmethod
    def from_toml(cls, path: str | Path) -> "Settings":
        """
        Load settings from a TOML configuration file.

        Sections ``site``, ``http_auth``, ``accounts``, ``timeouts`` and
        ``logging`` map onto the settings groups of the same name.

        Raises:
            MissingConfigError: If the file does not exist.
            ConfigurationError: If the file cannot be parsed.
        """
        path = Path(path)
        if not path.exists():
            raise MissingConfigError(str(path))

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Failed to parse TOML: {e}", {"path": str(path)}
            ) from e

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> "Settings":
        groups = {
            "site": SiteSettings,
            "http_auth": HttpAuthSettings,
            "accounts": AccountSettings,
            "timeouts": TimeoutSettings,
            "logging": LoggingSettings,
        }
        kwargs: dict[str, Any] = {}
        for name, settings_cls in groups.items():
            if name in data:
                kwargs[name] = settings_cls(**data[name])
        return cls(**kwargs)


def _require(key: str, value: Optional[str]) -> str:
    if not value:
        raise MissingConfigError(key)
    return value


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached suite settings.

    Returns:
        Settings instance.
    """
    config_file = os.getenv("E2E_CONFIG_FILE")

    if config_file and Path(config_file).exists():
        return Settings.from_toml(config_file)
    return Settings()


def reload_settings() -> Settings:
    """Reload settings, clearing the cache."""
    get_settings.cache_clear()
    return get_settings()
