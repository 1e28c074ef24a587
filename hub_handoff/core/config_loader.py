"""Configuration management for hub handoff."""

import asyncio
import os
import re
from pathlib import Path
from typing import Any, Literal

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings

from ..constants import DEFAULT_POLL_INTERVAL
from .exceptions import ConfigurationError

logger = structlog.get_logger()

DEFAULT_CONFIG_FILE = "config/handoff.yml"


class StoreConfig(BaseModel):
    """Resource store connection settings."""

    backend: Literal["kubernetes", "memory"] = "kubernetes"
    kubeconfig: str | None = None  # Falls back to in-cluster config, then ~/.kube/config
    context: str | None = None


class DetachmentConfig(BaseModel):
    """Detachment wait settings."""

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    timeout: float | None = Field(default=None, gt=0)  # None waits until cancelled
    exclusive: bool = False  # Hold per-cluster leases for the whole run


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    dir: str | None = None  # Console-only logging when unset
    max_file_size_mb: int = Field(default=10, ge=1, le=100)


class HandoffConfig(BaseSettings):
    """Main configuration for hub handoff."""

    store: StoreConfig = Field(default_factory=StoreConfig)
    detachment: DetachmentConfig = Field(default_factory=DetachmentConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file: str = Field(default=DEFAULT_CONFIG_FILE, alias="HANDOFF_CONFIG")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def load_config(config_path: str | None = None) -> HandoffConfig:
    """Load configuration from multiple sources (synchronous interface).

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration

    Note:
        This function cannot be called from a running event loop.
        For async code, use load_config_async() instead.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(load_config_async(config_path))
    raise RuntimeError(
        "load_config() cannot be called from within an async context. "
        "Use 'await load_config_async()' instead."
    )


async def load_config_async(config_path: str | None = None) -> HandoffConfig:
    """Load configuration from multiple sources (async interface).

    Order of precedence (lowest first): defaults, user config, project config,
    environment variables.

    Args:
        config_path: Optional path to YAML config file

    Returns:
        Loaded configuration
    """
    load_dotenv()

    config = HandoffConfig()

    user_config_path = Path.home() / ".config" / "hub-handoff" / "handoff.yml"
    await _load_config_file(config, user_config_path)

    default_config_file = os.getenv("HANDOFF_CONFIG", DEFAULT_CONFIG_FILE)
    project_config_path = Path(config_path or default_config_file)
    if config_path and not project_config_path.exists():
        raise ConfigurationError(f"Config file not found: {project_config_path}")
    await _load_config_file(config, project_config_path)

    config.config_file = str(project_config_path)

    _apply_env_overrides(config)

    return config


async def _load_config_file(config: HandoffConfig, config_path: Path) -> None:
    """Load and apply configuration from a YAML file."""
    if not config_path.exists():
        return

    yaml_config = await _load_yaml_config(config_path)
    try:
        _apply_section(config, "store", StoreConfig, yaml_config)
        _apply_section(config, "detachment", DetachmentConfig, yaml_config)
        _apply_section(config, "logging", LoggingConfig, yaml_config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {config_path}: {e}") from e

    logger.debug("Applied configuration file", path=str(config_path))


def _apply_section(
    config: HandoffConfig, section: str, model: type[BaseModel], yaml_config: dict[str, Any]
) -> None:
    """Merge one YAML section over the current values of that section."""
    section_data = yaml_config.get(section)
    if not section_data:
        return
    if not isinstance(section_data, dict):
        raise ConfigurationError(f"Section '{section}' must be a mapping")

    current = getattr(config, section).model_dump()
    current.update(section_data)
    setattr(config, section, model.model_validate(current))


def _apply_env_overrides(config: HandoffConfig) -> None:
    """Apply environment variable overrides."""
    if backend := os.getenv("HANDOFF_STORE"):
        if backend not in ("kubernetes", "memory"):
            raise ConfigurationError(f"Unsupported HANDOFF_STORE value: {backend}")
        config.store.backend = backend
    if kubeconfig := os.getenv("KUBECONFIG"):
        config.store.kubeconfig = kubeconfig
    if context := os.getenv("HANDOFF_KUBE_CONTEXT"):
        config.store.context = context
    if interval := os.getenv("HANDOFF_POLL_INTERVAL"):
        config.detachment.poll_interval = _parse_positive_float("HANDOFF_POLL_INTERVAL", interval)
    if timeout := os.getenv("HANDOFF_DETACH_TIMEOUT"):
        config.detachment.timeout = _parse_positive_float("HANDOFF_DETACH_TIMEOUT", timeout)
    if os.getenv("LOG_LEVEL"):
        config.logging.level = os.getenv("LOG_LEVEL", config.logging.level)
    if os.getenv("LOG_DIR"):
        config.logging.dir = os.getenv("LOG_DIR")


def _parse_positive_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


async def _load_yaml_config(config_path: Path) -> dict[str, Any]:
    """Load YAML configuration file."""
    try:
        content = await asyncio.to_thread(config_path.read_text)

        # Securely expand only allowed environment variables
        content = _expand_yaml_config(content)

        loaded = yaml.safe_load(content)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e

    # yaml.safe_load can return None, str, list, etc.
    if not isinstance(loaded, dict):
        return {}
    return loaded


def _expand_yaml_config(content: str) -> str:
    """Securely expand environment variables with allowlist."""

    allowed_env_vars = {
        "HOME",
        "USER",
        "XDG_CONFIG_HOME",
        "XDG_STATE_HOME",
        "KUBECONFIG",
        "HANDOFF_CONFIG",
        "HANDOFF_KUBE_CONTEXT",
        "LOG_LEVEL",
        "LOG_DIR",
    }

    def replace_if_allowed(match: re.Match) -> str:
        var_name = match.group(1) or match.group(2)
        original_pattern = match.group(0)

        if var_name in allowed_env_vars:
            return os.getenv(var_name, original_pattern)  # Keep original if not found

        logger.warning(
            "Environment variable not in allowlist, skipping expansion",
            variable=var_name,
            pattern=original_pattern,
        )
        return original_pattern

    return re.sub(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)", replace_if_allowed, content)
