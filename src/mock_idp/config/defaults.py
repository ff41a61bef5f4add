"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "directory": {
        # Local glauth instance
        "url": "ldap://localhost:3893",
        "timeout_ms": 10000,
        "connect_timeout_ms": 20000,
        "base_dn": "dc=glauth,dc=com",
        "bind_dn": "cn=serviceuser,dc=glauth,dc=com",
        # Bind password belongs in MOCK_IDP_LDAP_BIND_PASSWORD, not here
        "bind_password": "",
    },
    "signing": {
        "entity_id": "https://saml.example.com/entityid",
        # No default key material - generate with `mock-idp keys generate`
        "cert_path": None,
        "key_path": None,
        "signature_algorithm": "RSA-SHA256",
        "validity_minutes": 5,
    },
    "issuance": {
        "policy": "directory",
        "allowed_domains": ["example.com"],
        "login_path": "/saml/login",
    },
    "server": {
        "host": "0.0.0.0",
        "port": 5225,
        "log_path": "logs/mock-idp-server.log",
        "default_domain": "example.com",
    },
    "client": {
        "base_url": "http://localhost:5225",
        "email": None,
        "timeout": 30,
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/mock-idp.log",
        "redact_pii": False,
    },
}

# Default configuration file path
DEFAULT_CONFIG_PATH = "config/config.json"
