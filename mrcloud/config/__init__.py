"""
Configuration management for MrCloud Core.
"""

from mrcloud.config.settings import (
    AuthConfig,
    CloudConfig,
    LoggingConfig,
    MrCloudConfig,
    TransportConfig,
    UploadConfig,
    get_default_config,
    get_default_config_path,
    load_config,
)

__all__ = [
    "AuthConfig",
    "CloudConfig",
    "LoggingConfig",
    "MrCloudConfig",
    "TransportConfig",
    "UploadConfig",
    "get_default_config",
    "get_default_config_path",
    "load_config",
]
