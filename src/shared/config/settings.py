"""Configuration management with Pydantic Settings.

Environment variables are loaded from:
1. Environment variables (highest priority)
2. .env file (development)
3. Defaults (lowest priority)

All required values are checked in one place so a misconfigured deployment
reports every missing variable at once instead of failing on the first.
"""

import re
from enum import Enum
from pathlib import Path

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_REFRESH_PERIOD = "5m"

_DURATION_UNITS = {
    "ms": 0.001,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class LogLevel(str, Enum):
    """Logging level."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Logging format."""

    JSON = "json"
    TEXT = "text"


class CredentialBackend(str, Enum):
    """Where cluster credentials are read from."""

    VAULT = "vault"
    ENV = "env"  # Development and tests only


def parse_duration(value: str) -> float:
    """Parse a duration such as ``5m``, ``90s`` or ``1h30m`` into seconds.

    Raises:
        ValueError: If the string is not a sequence of ``<number><unit>`` parts
            or the resulting duration is not positive.
    """
    text = value.strip()
    if not text:
        raise ValueError("empty duration")

    position = 0
    total = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if position != len(text):
        raise ValueError(f"invalid duration {value!r}")
    if total <= 0:
        raise ValueError(f"duration must be positive, got {value!r}")
    return total


class VaultSettings(BaseSettings):
    """HashiCorp Vault configuration for the AppRole credential backend."""

    model_config = SettingsConfigDict(
        env_prefix="VAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    addr: str = Field(default="", description="Vault server address")
    role_id: str = Field(default="", description="AppRole role ID")
    secret_id: str = Field(default="", description="AppRole secret ID")
    namespace: str = Field(default="", description="Vault namespace")
    engine_name: str = Field(default="", description="KV v2 mount path")
    timeout_seconds: float = Field(default=30.0, description="Vault request timeout")

    pe_task_account: str = Field(
        default="",
        alias="PE_TASK_ACCOUNT",
        description="Secret path suffix for Prism Element credentials",
    )
    pc_task_account: str = Field(
        default="",
        alias="PC_TASK_ACCOUNT",
        description="Secret path suffix for Prism Central credentials",
    )

    def missing_fields(self) -> list[str]:
        """Return the environment variable names that are not set."""
        required = {
            "VAULT_ADDR": self.addr,
            "VAULT_ROLE_ID": self.role_id,
            "VAULT_SECRET_ID": self.secret_id,
            "VAULT_NAMESPACE": self.namespace,
            "VAULT_ENGINE_NAME": self.engine_name,
            "PE_TASK_ACCOUNT": self.pe_task_account,
            "PC_TASK_ACCOUNT": self.pc_task_account,
        }
        return [name for name, value in required.items() if not value]


class Settings(BaseSettings):
    """Main exporter settings.

    All settings can be overridden via environment variables.
    Vault settings use the ``VAULT_`` prefix (e.g., VAULT_ADDR).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application metadata
    app_name: str = Field(default="nutanix-exporter", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Environment = Field(
        default=Environment.PRODUCTION,
        alias="ENV",
        description="Deployment environment",
    )

    # Logging configuration
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Logging format")

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server bind host")
    port: int = Field(default=9408, description="Server bind port")

    # Prism Central
    pc_cluster_name: str = Field(default="", description="Prism Central cluster name")
    pc_cluster_url: str = Field(default="", description="Prism Central base URL")
    pc_api_version: str = Field(default="v4", description="Discovery API version (v3 or v4)")
    cluster_prefix: str | None = Field(
        default=None,
        description="Only export clusters whose name starts with this prefix",
    )

    # Collection behaviour
    refresh_period: str = Field(
        default=DEFAULT_REFRESH_PERIOD,
        description="Interval between cluster discovery cycles",
    )
    request_timeout_seconds: float = Field(default=10.0, description="Outbound request timeout")
    scrape_timeout_seconds: float = Field(
        default=30.0,
        description="Scrape deadline when Prometheus sends none",
    )
    skip_tls_verify: bool = Field(default=True, description="Skip TLS verification for Prism")
    metrics_config_dir: Path = Field(
        default=Path("configs"),
        description="Directory holding the per-entity metric allow-lists",
    )

    # Credentials
    credential_backend: CredentialBackend = Field(
        default=CredentialBackend.VAULT,
        description="Credential provider backend",
    )
    vault: VaultSettings = Field(default_factory=VaultSettings)

    @field_validator("pc_api_version", mode="before")
    @classmethod
    def normalize_api_version(cls, v: str | None) -> str:
        return str(v or "").strip().lower() or "v4"

    @field_validator("cluster_prefix", mode="before")
    @classmethod
    def empty_prefix_is_none(cls, v: str | None) -> str | None:
        return v or None

    @model_validator(mode="after")
    def check_required(self) -> "Settings":
        """Collect every missing required variable into one error."""
        missing = []
        if not self.pc_cluster_name:
            missing.append("PC_CLUSTER_NAME")
        if not self.pc_cluster_url:
            missing.append("PC_CLUSTER_URL")
        if self.credential_backend == CredentialBackend.VAULT:
            missing.extend(self.vault.missing_fields())

        if missing:
            raise ValueError(f"missing required environment variables: {', '.join(missing)}")
        return self

    @property
    def refresh_period_valid(self) -> bool:
        try:
            parse_duration(self.refresh_period)
        except ValueError:
            return False
        return True

    @property
    def refresh_period_seconds(self) -> float:
        """Discovery interval in seconds, falling back to the default when invalid."""
        try:
            return parse_duration(self.refresh_period)
        except ValueError:
            return parse_duration(DEFAULT_REFRESH_PERIOD)


def load_settings() -> Settings:
    """Build settings from the environment.

    Raises:
        ConfigurationError: With every validation problem in one message.
    """
    try:
        return Settings()
    except ValidationError as e:
        problems = "; ".join(error["msg"] for error in e.errors())
        raise ConfigurationError(problems) from e

