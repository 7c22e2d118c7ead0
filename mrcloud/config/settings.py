"""
Configuration management for MrCloud Core.

Loads YAML configuration from file with sensible defaults and validation.
Supports environment variable substitution using ${ENV_VAR} syntax.
"""

import os
import re
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Type, TypeVar

import yaml

from mrcloud.exceptions import InvalidConfigurationError
from mrcloud.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

REFRESH_TOKEN_ENV = "MRCLOUD_REFRESH_TOKEN"

DEFAULT_CHUNK_SIZE = 8 * 1024 * 1024


def _expand_env_vars(value: Any) -> Any:
    """
    Recursively expand environment variables in configuration values.

    Supports ${ENV_VAR} syntax with optional default values: ${ENV_VAR:default}

    Examples:
        "${MRCLOUD_TOKEN}" -> value of MRCLOUD_TOKEN env var
        "${MRCLOUD_BACKEND:httpx}" -> value of MRCLOUD_BACKEND or "httpx" if not set
    """
    if isinstance(value, str):
        # Pattern matches ${VAR} or ${VAR:default}
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replace_env_var(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


@dataclass
class CloudConfig:
    """Remote service endpoints and client identity."""

    base_url: str = "https://cloud.mail.ru"
    upload_url: str = "https://upload.cloud.mail.ru/upload"
    download_url: str = "https://cloclo.cloud.mail.ru/get"
    token_url: str = "https://o2.mail.ru/token"
    public_url: str = "https://cloud.mail.ru/public"
    client_id: str = "cloud-win"
    user_agent: str = "CloudDiskOWindows 17.12.0009 beta WzBbt1Ygbm"


@dataclass
class AuthConfig:
    """OAuth credentials held in memory for the lifetime of the process."""

    refresh_token: str = ""
    access_token: str = ""
    safety_margin_seconds: int = 60


@dataclass
class TransportConfig:
    """Transport backend selection and tuning."""

    backend: str = "httpx"  # "httpx" (pooled) or "aiohttp" (per-request)
    timeout_seconds: float = 30.0
    max_connections: int = 20
    expect_continue: bool = False  # applied to upload chunk PUTs


@dataclass
class UploadConfig:
    """Chunked upload tuning."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_attempts: int = 5
    base_delay: float = 0.5
    backoff_factor: float = 2.0


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    format: str = "console"  # "console" or "json"


@dataclass
class MrCloudConfig:
    """Main MrCloud Core configuration."""

    cloud: CloudConfig = field(default_factory=CloudConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    upload: UploadConfig = field(default_factory=UploadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_default_config_path() -> str:
    """Get the default configuration file path."""
    return os.path.expanduser("~/.mrcloud/config.yaml")


def get_default_config() -> MrCloudConfig:
    """
    Get default configuration with sensible defaults.

    The refresh token is taken from the environment when present.
    """
    config = MrCloudConfig()
    _apply_env_overrides(config)
    return config


def load_config(config_path: Optional[str] = None) -> MrCloudConfig:
    """
    Load configuration from YAML file with validation.

    If config file is not found, returns default configuration.
    If config file is malformed or invalid, raises InvalidConfigurationError.

    Args:
        config_path: Path to configuration file. If None, uses default path.

    Returns:
        MrCloudConfig: Loaded and validated configuration

    Raises:
        InvalidConfigurationError: If configuration is invalid or malformed
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_path = os.path.expanduser(config_path)

    if not os.path.exists(config_path):
        logger.info(f"Configuration file not found at {config_path}, using defaults")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)
        logger.debug(f"Loaded configuration from {config_path}")
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML configuration file '{config_path}': {e}")
        raise InvalidConfigurationError(
            f"Failed to parse YAML configuration file '{config_path}': {e}"
        ) from e
    except OSError as e:
        logger.error(f"Failed to read configuration file '{config_path}': {e}")
        raise InvalidConfigurationError(
            f"Failed to read configuration file '{config_path}': {e}"
        ) from e

    if config_data is None:
        logger.info(f"Configuration file {config_path} is empty, using defaults")
        return get_default_config()

    if not isinstance(config_data, dict):
        raise InvalidConfigurationError(
            f"Invalid configuration in '{config_path}': top level must be a mapping"
        )

    config_data = _expand_env_vars(config_data)

    try:
        config = _build_config_from_dict(config_data)
        _apply_env_overrides(config)
        _validate_config(config)
    except InvalidConfigurationError as e:
        logger.error(f"Invalid configuration in '{config_path}': {e}")
        raise InvalidConfigurationError(
            f"Invalid configuration in '{config_path}': {e}"
        ) from e

    logger.info(f"Successfully loaded and validated configuration from {config_path}")
    return config


def _build_section(cls: Type[T], data: Any, section: str) -> T:
    """Build one config dataclass from a mapping, rejecting unknown keys."""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise InvalidConfigurationError(f"Section '{section}' must be a mapping")

    known = {f.name: f for f in fields(cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise InvalidConfigurationError(
            f"Unknown keys in section '{section}': {', '.join(sorted(unknown))}"
        )

    defaults = cls()
    values: Dict[str, Any] = {}
    for name, value in data.items():
        expected = type(getattr(defaults, name))
        try:
            if expected is bool and isinstance(value, str):
                values[name] = value.strip().lower() in ("1", "true", "yes", "on")
            elif value is None:
                values[name] = getattr(defaults, name)
            else:
                values[name] = expected(value)
        except (TypeError, ValueError) as e:
            raise InvalidConfigurationError(
                f"Invalid value for '{section}.{name}': {value!r}"
            ) from e
    return cls(**values)


def _build_config_from_dict(config_data: Dict[str, Any]) -> MrCloudConfig:
    """
    Build MrCloudConfig from dictionary loaded from YAML.

    Merges user configuration with defaults.
    """
    sections = {f.name: f for f in fields(MrCloudConfig)}
    unknown = set(config_data) - set(sections)
    if unknown:
        raise InvalidConfigurationError(
            f"Unknown configuration sections: {', '.join(sorted(unknown))}"
        )

    return MrCloudConfig(
        cloud=_build_section(CloudConfig, config_data.get('cloud'), 'cloud'),
        auth=_build_section(AuthConfig, config_data.get('auth'), 'auth'),
        transport=_build_section(TransportConfig, config_data.get('transport'), 'transport'),
        upload=_build_section(UploadConfig, config_data.get('upload'), 'upload'),
        logging=_build_section(LoggingConfig, config_data.get('logging'), 'logging'),
    )


def _apply_env_overrides(config: MrCloudConfig) -> None:
    refresh_token = os.environ.get(REFRESH_TOKEN_ENV)
    if refresh_token:
        config.auth.refresh_token = refresh_token


def _validate_config(config: MrCloudConfig) -> None:
    """
    Validate configuration values.

    Raises:
        InvalidConfigurationError: If any value is out of range
    """
    for name in ("base_url", "upload_url", "download_url", "token_url"):
        url = getattr(config.cloud, name)
        if not url.startswith(("http://", "https://")):
            raise InvalidConfigurationError(f"cloud.{name} must be an http(s) URL, got '{url}'")

    if not config.cloud.client_id:
        raise InvalidConfigurationError("cloud.client_id must not be empty")

    if config.auth.safety_margin_seconds < 0:
        raise InvalidConfigurationError("auth.safety_margin_seconds must be non-negative")

    if config.transport.backend not in ("httpx", "aiohttp"):
        raise InvalidConfigurationError(
            f"transport.backend must be 'httpx' or 'aiohttp', got '{config.transport.backend}'"
        )
    if config.transport.timeout_seconds <= 0:
        raise InvalidConfigurationError("transport.timeout_seconds must be positive")
    if config.transport.max_connections < 1:
        raise InvalidConfigurationError("transport.max_connections must be at least 1")

    if config.upload.chunk_size < 1:
        raise InvalidConfigurationError("upload.chunk_size must be positive")
    if config.upload.max_attempts < 1:
        raise InvalidConfigurationError("upload.max_attempts must be at least 1")
    if config.upload.base_delay < 0:
        raise InvalidConfigurationError("upload.base_delay must be non-negative")
    if config.upload.backoff_factor < 1:
        raise InvalidConfigurationError("upload.backoff_factor must be at least 1")

    if config.logging.format not in ("console", "json"):
        raise InvalidConfigurationError(
            f"logging.format must be 'console' or 'json', got '{config.logging.format}'"
        )
