"""Config module.

This module provides configuration management functionality.
"""

from mock_idp.config.manager import load_config
from mock_idp.config.schema import (
    ClientConfig,
    Config,
    DirectoryConfig,
    IssuanceConfig,
    IssuancePolicy,
    LoggingConfig,
    ServerConfig,
    SigningConfig,
)

__all__ = [
    # Main configuration loading
    "load_config",
    # Configuration models
    "Config",
    "ClientConfig",
    "DirectoryConfig",
    "IssuanceConfig",
    "IssuancePolicy",
    "LoggingConfig",
    "ServerConfig",
    "SigningConfig",
]
