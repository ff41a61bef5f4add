"""Configuration manager for loading and managing configuration.

This module provides the main configuration loading and management functionality,
including support for JSON configuration files, environment variable overrides,
and configuration validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from mock_idp.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from mock_idp.config.schema import Config
from mock_idp.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable prefix for all configuration overrides
ENV_PREFIX = "MOCK_IDP_"


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string.

    Args:
        value: String value to parse (case-insensitive)

    Returns:
        Boolean value
    """
    return value.lower() in ("true", "1", "yes", "on")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated list."""
    return [item.strip() for item in value.split(",") if item.strip()]


# Environment variable suffix -> (section, field, converter)
ENV_OVERRIDES: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    # Directory section
    "LDAP_URL": ("directory", "url", str),
    "LDAP_TIMEOUT_MS": ("directory", "timeout_ms", int),
    "LDAP_CONNECT_TIMEOUT_MS": ("directory", "connect_timeout_ms", int),
    "LDAP_BASE_DN": ("directory", "base_dn", str),
    "LDAP_BIND_DN": ("directory", "bind_dn", str),
    "LDAP_BIND_PASSWORD": ("directory", "bind_password", str),
    # Signing section
    "ENTITY_ID": ("signing", "entity_id", str),
    "CERT_PATH": ("signing", "cert_path", str),
    "KEY_PATH": ("signing", "key_path", str),
    "SIGNATURE_ALGORITHM": ("signing", "signature_algorithm", str),
    "VALIDITY_MINUTES": ("signing", "validity_minutes", int),
    # Issuance section
    "POLICY": ("issuance", "policy", str),
    "ALLOWED_DOMAINS": ("issuance", "allowed_domains", _parse_list),
    "LOGIN_PATH": ("issuance", "login_path", str),
    # Server section
    "HOST": ("server", "host", str),
    "PORT": ("server", "port", int),
    "SERVER_LOG_PATH": ("server", "log_path", str),
    "DEFAULT_DOMAIN": ("server", "default_domain", str),
    # Client section
    "BASE_URL": ("client", "base_url", str),
    "EMAIL": ("client", "email", str),
    "CLIENT_TIMEOUT": ("client", "timeout", int),
    # Logging section
    "LOG_LEVEL": ("logging", "level", str),
    "LOG_FILE": ("logging", "log_file", str),
    "REDACT_PII": ("logging", "redact_pii", _parse_bool),
}


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (MOCK_IDP_* prefix)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("custom/config.json"))
        >>> base_dn = config.directory.base_dn
    """
    # Load .env file if present in project root
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)

    # Check for sensitive values before env overrides mix in secrets
    _check_sensitive_values(config_dict)

    config_dict = _apply_env_overrides(config_dict)

    try:
        return Config(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and "
            f"{ENV_PREFIX}* environment variables."
        )


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return defaults.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        ConfigurationError: If JSON is malformed or file unreadable
    """
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
            logger.info(f"Loaded configuration from {config_path}")
            return config_dict
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
            )
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check file permissions and path"
            )

    logger.info(f"Config file not found: {config_path}. Using default configuration.")
    # Deep copy so callers cannot mutate the defaults
    return json.loads(json.dumps(DEFAULT_CONFIG))


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with MOCK_IDP_ prefix.

    For example: MOCK_IDP_LDAP_URL, MOCK_IDP_POLICY, MOCK_IDP_ALLOWED_DOMAINS

    Args:
        config_dict: Configuration dictionary to update

    Returns:
        Updated configuration dictionary with environment overrides applied

    Raises:
        ConfigurationError: If a numeric override cannot be parsed
    """
    for suffix, (section, field, convert) in ENV_OVERRIDES.items():
        env_key = f"{ENV_PREFIX}{suffix}"
        raw = os.getenv(env_key)
        if raw is None:
            continue
        try:
            value = convert(raw)
        except ValueError:
            raise ConfigurationError(
                f"Invalid value for {env_key}: '{raw}'. "
                f"Fix: Provide a value of the expected type."
            )
        config_dict.setdefault(section, {})[field] = value
        logger.debug(f"Override: {section}.{field} from environment")

    return config_dict


def _check_sensitive_values(config_dict: dict[str, Any]) -> None:
    """Warn when a directory password is stored in the configuration file.

    Args:
        config_dict: Configuration dictionary to check
    """
    directory = config_dict.get("directory", {})
    if directory.get("bind_password"):
        logger.warning(
            "WARNING: Directory bind password found in configuration file! "
            "Passwords should be stored in environment variables, not config files. "
            f"Use {ENV_PREFIX}LDAP_BIND_PASSWORD environment variable instead."
        )
