"""Configuration loading and management for redisbox"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)

CONFIG_FILENAME = ".redisbox.yaml"
CONFIG_ENV_VAR = "REDISBOX_CONFIG"


class HostConfig(BaseModel):
    """Store cluster entry point"""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    address: str = Field(
        default="127.0.0.1",
        validation_alias=AliasChoices("address", "addr"),
        description="Host name or IP address",
    )
    port: int = Field(default=6379, description="TCP port")


class StoreConfig(BaseModel):
    """Connection settings for a cache backend

    Unknown keys are kept as passthrough options and handed unmodified to the
    store client when connecting.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    hosts: list[HostConfig] = Field(
        default_factory=lambda: [HostConfig()],
        description="Entry points, tried in order",
    )
    segment: str = Field(default="test", description="Default segment")
    partition: str = Field(default="test", description="Default namespace")

    @field_validator("hosts")
    @classmethod
    def validate_hosts(cls, v: list[HostConfig]) -> list[HostConfig]:
        """Require at least one host"""
        if not v:
            msg = "At least one host is required"
            raise ValueError(msg)
        return v

    @field_validator("segment", "partition")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Require non-empty names without null characters"""
        if not v or "\0" in v:
            msg = "Must be a non-empty string without null characters"
            raise ValueError(msg)
        return v

    @property
    def passthrough_options(self) -> dict[str, Any]:
        """Store specific options that are not part of the schema"""
        return dict(self.model_extra or {})

    @classmethod
    def from_options(
        cls, options: Mapping[str, Any] | None = None, **overrides: Any
    ) -> "StoreConfig":
        """Build a config by shallow-merging options over the defaults

        Raises:
            ValueError: If the options are invalid
        """
        merged = {**(options or {}), **overrides}
        try:
            return cls(**merged)
        except ValidationError as e:
            msg = f"Invalid store configuration: {e}"
            raise ValueError(msg) from e


class ClientConfig(BaseModel):
    """Generic cache client configuration"""

    default_ttl: int = Field(default=3600, description="Default TTL in seconds")


class Config(BaseModel):
    """Application configuration"""

    backend: str = Field(default="redis", description="Cache backend (redis, memory)")
    store: StoreConfig = StoreConfig()
    client: ClientConfig = ClientConfig()


def find_config_file() -> Path | None:
    """Find .redisbox.yaml config file

    Looks at $REDISBOX_CONFIG first, then the current directory and up to
    five parent directories.
    """
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)

    current = Path.cwd()

    for _ in range(6):
        config_path = current / CONFIG_FILENAME
        if config_path.exists():
            return config_path

        # Stop at root directory
        if current.parent == current:
            break
        current = current.parent

    return None


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from YAML file

    Args:
        config_path: Path to config file. If None, searches for .redisbox.yaml

    Returns:
        Loaded configuration object (defaults when no file is found and no
        path was given)

    Raises:
        FileNotFoundError: If the given config file cannot be read
        ValueError: If config is invalid
    """
    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            return Config()

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Invalid YAML in config file: {e}"
        raise ValueError(msg) from e
    except OSError as e:
        msg = f"Cannot read config file: {e}"
        raise FileNotFoundError(msg) from e

    if data is None:
        return Config()

    if not isinstance(data, dict):
        msg = "Config file must contain a YAML object"
        raise ValueError(msg)

    try:
        return Config(**data)
    except ValidationError as e:
        msg = f"Invalid configuration: {e}"
        raise ValueError(msg) from e
