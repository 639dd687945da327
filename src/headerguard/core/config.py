"""Configuration types with environment variable support.

The filter itself is configured from a YAML or TOML document shaped like a
middleware plugin section::

    headerblock:
      requestHeaders:
        - name: User-Agent
          value: "MJ12bot|AhrefsBot"
        - value: "sqlmap"
      whitelistRequestHeaders:
        - name: Cf-Ipcountry
          value: VN
      allowedIPs:
        - "10.0.0.0/8, 192.168.1.1"
      log: true

Process level settings (log level, bind address, upstream) can be configured
via environment variables with the HEADERGUARD_ prefix.
Example: HEADERGUARD_LOG_LEVEL=debug sets log_level to "debug".
"""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from headerguard.core.errors import ConfigError

CONFIG_SECTION = "headerblock"


def load_config_from_file(path: str | Path) -> dict[str, Any]:
    """Load configuration from a YAML or TOML file.

    Args:
        path: Path to the configuration file (.yaml, .yml, or .toml)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValueError: If the config file has encoding errors, invalid syntax, or unsupported format
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ValueError(f"Config file encoding error in {path}: {e}") from e

    try:
        if path.suffix in (".yaml", ".yml"):
            return yaml.safe_load(content) or {}
        elif path.suffix == ".toml":
            return tomllib.loads(content)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {path}: {e}") from e


class HeaderPattern(BaseModel):
    """One raw name/value pattern pair.

    Accepts ``name``/``value`` as well as the ``header``/``env`` keys used by
    existing plugin configurations. Empty or missing fields mean "absent".
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("name", "header"),
        description="Pattern for the header name.",
    )
    value: str | None = Field(
        default=None,
        validation_alias=AliasChoices("value", "env"),
        description="Pattern for any of the header's values.",
    )
    match: Literal["regex", "exact", "glob"] = Field(
        default="regex",
        description="How name and value patterns are interpreted.",
    )


class FilterConfig(BaseModel):
    """Header block filter configuration.

    Field aliases follow the plugin configuration keys (requestHeaders,
    whitelistRequestHeaders, allowedIPs, log).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    request_headers: list[HeaderPattern] = Field(
        default_factory=list,
        alias="requestHeaders",
        description="Blocklist patterns, evaluated in order.",
    )
    whitelist_request_headers: list[HeaderPattern] = Field(
        default_factory=list,
        alias="whitelistRequestHeaders",
        description="Whitelist patterns that clear a blocked header.",
    )
    allowed_ips: list[str] = Field(
        default_factory=list,
        alias="allowedIPs",
        description="IPs/CIDRs allowed to bypass a blocked header. Entries may be comma-separated.",
    )
    log: bool = Field(
        default=False,
        description="Log allow/deny decisions and skipped allow-list entries.",
    )

    @field_validator("allowed_ips", mode="before")
    @classmethod
    def _split_single_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


def load_filter_config(source: str | Path | Mapping[str, Any]) -> FilterConfig:
    """Build a FilterConfig from a file path or an already loaded mapping.

    The filter block may be the document root or nested under a
    ``headerblock`` key.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ConfigError: If the document does not describe a valid filter
    """
    if isinstance(source, (str, Path)):
        try:
            data: Any = load_config_from_file(source)
        except ValueError as e:
            raise ConfigError(str(e)) from e
    else:
        data = source

    if not isinstance(data, Mapping):
        raise ConfigError("Filter config root must be a mapping")
    if CONFIG_SECTION in data:
        data = data[CONFIG_SECTION] or {}

    try:
        return FilterConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid filter config: {e}") from e


class HeaderGuardSettings(BaseSettings):
    """Process level settings.

    All settings can be overridden via environment variables:
    - HEADERGUARD_CONFIG_FILE: Path to the filter config file
    - HEADERGUARD_LOG_LEVEL: debug, info, warning or error
    - HEADERGUARD_LOG_JSON: Render logs as JSON lines
    - HEADERGUARD_BIND: Proxy listen address (host:port)
    - HEADERGUARD_UPSTREAM: Upstream base URL for the proxy
    - HEADERGUARD_REQUEST_TIMEOUT: Upstream request timeout in seconds
    """

    model_config = SettingsConfigDict(
        env_prefix="HEADERGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    config_file: str | None = Field(
        default=None,
        description="Path to the filter config file (.yaml, .yml or .toml).",
    )
    log_level: str = Field(
        default="info",
        description="Log level (debug, info, warning, error).",
    )
    log_json: bool = Field(
        default=False,
        description="Render logs as JSON lines instead of console output.",
    )
    bind: str = Field(
        default="0.0.0.0:8080",
        description="Proxy listen address.",
    )
    upstream: str = Field(
        default="http://127.0.0.1:8000",
        description="Upstream base URL requests are forwarded to.",
    )
    request_timeout: float | None = Field(
        default=60.0,
        description="Timeout in seconds for upstream requests. None or 0 for indefinite.",
    )


_settings: HeaderGuardSettings | None = None


def get_settings() -> HeaderGuardSettings:
    """Get the cached settings instance.

    To reload settings (e.g., in tests), call clear_settings() first.
    """
    global _settings
    if _settings is None:
        _settings = HeaderGuardSettings()
    return _settings


def clear_settings() -> None:
    """Clear the cached settings so the next get_settings() rereads the environment."""
    global _settings
    _settings = None
