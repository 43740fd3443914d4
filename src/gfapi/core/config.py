"""
Configuration module for client settings.

This module provides configuration loading and validation for base URLs,
request pacing, logging and TOTP defaults.
"""
# [CTX:PBI-1:1-7:CFG]

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..log import LEVELS
from .auth import ENVIRONMENTS, SUPPORTED_ALGORITHMS, SUPPORTED_ENCODINGS, Credential
from .errors import ConfigurationError, ConfigValidationError

DEFAULT_BASE_URLS = {
    "production": "https://production-gameflip.fingershock.com/api/v1",
    "test": "https://test-gameflip.fingershock.com/api/v1",
    "development": "http://localhost:3000/api/v1",
}

DEFAULT_INVENTORY_URL = "https://steamcommunity.com/inventory/{profile_id}/{app_id}/{context_id}"

KEY_ENV_VAR = "GFAPI_KEY"
SECRET_ENV_VAR = "GFAPI_SECRET"


@dataclass
class TotpConfig:
    """Default TOTP parameters applied to secrets that do not set them."""

    algorithm: str = "sha1"
    encoding: str = "base32"
    digits: int = 6
    period: int = 30

    def to_dict(self) -> dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "encoding": self.encoding,
            "digits": self.digits,
            "period": self.period,
        }


@dataclass
class ClientConfig:
    """Configuration for a GfApi client."""

    base_urls: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_BASE_URLS))
    inventory_url: str = DEFAULT_INVENTORY_URL
    rate_limit_interval_ms: float = 1000
    log_level: str = "debug"
    totp: TotpConfig = field(default_factory=TotpConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClientConfig":
        """Create ClientConfig from dictionary, keeping defaults for missing keys."""
        base_urls = dict(DEFAULT_BASE_URLS)
        base_urls.update(data.get("base_urls") or {})

        totp_data = data.get("totp") or {}
        totp = TotpConfig(**totp_data) if totp_data else TotpConfig()

        return cls(
            base_urls=base_urls,
            inventory_url=data.get("inventory_url", DEFAULT_INVENTORY_URL),
            rate_limit_interval_ms=data.get("rate_limit_interval_ms", 1000),
            log_level=data.get("log_level", "debug"),
            totp=totp,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_urls": dict(self.base_urls),
            "inventory_url": self.inventory_url,
            "rate_limit_interval_ms": self.rate_limit_interval_ms,
            "log_level": self.log_level,
            "totp": self.totp.to_dict(),
        }

    def base_url_for(self, environment: str) -> str:
        try:
            return self.base_urls[environment]
        except KeyError:
            raise ConfigurationError(f"No base URL configured for '{environment}'") from None


def default_config_path() -> Path:
    return Path(__file__).parents[3] / "config" / "gfapi.yml"


def load_config(config_path: str | Path | None = None) -> ClientConfig:
    """
    Load client configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        ClientConfig, defaults if the file is missing or empty

    Raises:
        yaml.YAMLError: If config file is invalid YAML
        ConfigValidationError: If config validation fails
    """
    config_path = default_config_path() if config_path is None else Path(config_path)

    if not config_path.exists():
        return ClientConfig()

    with open(config_path, "r") as f:
        data = yaml.safe_load(f)

    if not data:
        return ClientConfig()

    if not isinstance(data, Mapping):
        raise ConfigValidationError(f"{config_path} must contain a mapping")

    try:
        config = ClientConfig.from_dict(data)
    except TypeError as e:
        raise ConfigValidationError(f"{config_path}: {e}") from e
    validate_config(config)
    return config


def validate_config(config: ClientConfig) -> None:
    """
    Validate configuration.

    Args:
        config: Configuration to validate

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    for env in ENVIRONMENTS:
        if not config.base_urls.get(env):
            raise ConfigValidationError(f"base_urls.{env} must be set")

    for env, url in config.base_urls.items():
        if not str(url).startswith(("http://", "https://")):
            raise ConfigValidationError(f"base_urls.{env} must be an http(s) URL, got {url!r}")

    for placeholder in ("{profile_id}", "{app_id}", "{context_id}"):
        if placeholder not in config.inventory_url:
            raise ConfigValidationError(f"inventory_url must contain {placeholder}")

    if not isinstance(config.rate_limit_interval_ms, (int, float)) or config.rate_limit_interval_ms < 0:
        raise ConfigValidationError("rate_limit_interval_ms must be a non-negative number")

    if str(config.log_level).lower() not in LEVELS:
        raise ConfigValidationError(f"Unknown log_level '{config.log_level}'")

    totp = config.totp
    if totp.algorithm.lower() not in SUPPORTED_ALGORITHMS:
        raise ConfigValidationError(f"Unsupported totp.algorithm '{totp.algorithm}'")
    if totp.encoding.lower() not in SUPPORTED_ENCODINGS:
        raise ConfigValidationError(f"Unsupported totp.encoding '{totp.encoding}'")
    if totp.digits <= 0:
        raise ConfigValidationError("totp.digits must be positive")
    if totp.period <= 0:
        raise ConfigValidationError("totp.period must be positive")


def credential_from_env(
    config: Optional[ClientConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Credential:
    """
    Build a Credential from GFAPI_KEY and GFAPI_SECRET.

    Raises:
        ConfigurationError: If either variable is missing
    """
    environ = os.environ if environ is None else environ
    config = config or ClientConfig()

    key = environ.get(KEY_ENV_VAR)
    secret = environ.get(SECRET_ENV_VAR)
    if not key or not secret:
        raise ConfigurationError(f"{KEY_ENV_VAR} and {SECRET_ENV_VAR} must both be set")

    return Credential.build(key, secret, defaults=config.totp.to_dict())
