"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using pydantic.
All configuration values are validated according to the schema defined here.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class IssuancePolicy(str, Enum):
    """Policy deciding whether an assertion may be issued.

    Attributes:
        PERMISSIVE: Trust the caller-supplied subject id, no directory lookup
        DIRECTORY: Require a directory match and an accepted email domain
    """

    PERMISSIVE = "permissive"
    DIRECTORY = "directory"


class DirectoryConfig(BaseModel):
    """Configuration for the LDAP directory.

    Attributes:
        url: Directory URL (ldap:// or ldaps://)
        timeout_ms: Operation timeout in milliseconds
        connect_timeout_ms: Connect timeout in milliseconds
        base_dn: Search base DN
        bind_dn: DN of the service identity used to bind
        bind_password: Password of the service identity
    """

    url: str = Field(default="ldap://localhost:3893", description="Directory URL")
    timeout_ms: int = Field(
        default=10000,
        ge=1,
        description="Operation timeout in milliseconds"
    )
    connect_timeout_ms: int = Field(
        default=20000,
        ge=1,
        description="Connect timeout in milliseconds"
    )
    base_dn: str = Field(default="dc=glauth,dc=com", description="Search base DN")
    bind_dn: str = Field(
        default="cn=serviceuser,dc=glauth,dc=com",
        description="Service identity DN"
    )
    bind_password: str = Field(default="", description="Service identity password")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL uses an LDAP scheme.

        Args:
            v: URL string to validate

        Returns:
            Validated URL string

        Raises:
            ValueError: If URL does not start with ldap:// or ldaps://
        """
        if not v.startswith(("ldap://", "ldaps://")):
            raise ValueError(
                f"Invalid directory URL: {v}. Must start with ldap:// or ldaps://"
            )
        return v


class SigningConfig(BaseModel):
    """Configuration for SAML response signing.

    Attributes:
        entity_id: Issuer identifier placed in every response
        cert_path: Path to PEM signing certificate
        key_path: Path to PEM private key
        signature_algorithm: RSA-SHA256 or RSA-SHA512
        validity_minutes: Assertion validity period
    """

    entity_id: str = Field(
        default="https://saml.example.com/entityid",
        description="IdP issuer identifier"
    )
    cert_path: Optional[Path] = None
    key_path: Optional[Path] = None
    signature_algorithm: str = Field(
        default="RSA-SHA256",
        description="Signature algorithm: RSA-SHA256 or RSA-SHA512"
    )
    validity_minutes: int = Field(
        default=5,
        ge=1,
        description="Assertion validity period in minutes"
    )

    @field_validator("signature_algorithm")
    @classmethod
    def validate_signature_algorithm(cls, v: str) -> str:
        valid = ["RSA-SHA256", "RSA-SHA512"]
        if v not in valid:
            raise ValueError(
                f"Invalid signature_algorithm: {v}. Must be one of: {', '.join(valid)}"
            )
        return v


class IssuanceConfig(BaseModel):
    """Configuration for the issue-vs-redirect decision.

    Attributes:
        policy: Issuance policy (permissive or directory)
        allowed_domains: Email domains accepted by the directory policy
        login_path: Path of the interactive login entry point
    """

    policy: IssuancePolicy = Field(
        default=IssuancePolicy.DIRECTORY,
        description="Issuance policy"
    )
    allowed_domains: List[str] = Field(
        default_factory=lambda: ["example.com"],
        description="Accepted email domains (directory policy)"
    )
    login_path: str = Field(default="/saml/login", description="Interactive login path")

    @field_validator("allowed_domains")
    @classmethod
    def normalize_domains(cls, v: List[str]) -> List[str]:
        """Lower-case domains and strip a leading '@' or '.'."""
        return [d.strip().lstrip("@.").lower() for d in v if d.strip()]

    @field_validator("login_path")
    @classmethod
    def validate_login_path(cls, v: str) -> str:
        if not v.startswith("/"):
            raise ValueError(f"Invalid login_path: {v}. Must start with '/'")
        return v


class ServerConfig(BaseModel):
    """Configuration for the Flask server.

    Attributes:
        host: Bind address
        port: Listen port
        log_path: Server log file path
        default_domain: Domain used when no device profile identifier exists
    """

    host: str = Field(default="0.0.0.0", description="Server host address")
    port: int = Field(default=5225, description="HTTP server port")
    log_path: Path = Field(
        default=Path("logs/mock-idp-server.log"),
        description="Server log file path"
    )
    default_domain: str = Field(
        default="example.com",
        description="Fallback domain for the profile identifier endpoint"
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port number is in valid range."""
        if not 1 <= v <= 65535:
            raise ValueError(f"Invalid port {v}. Must be between 1 and 65535.")
        return v


class ClientConfig(BaseModel):
    """Configuration for the auto-authentication client.

    Attributes:
        base_url: Base URL of the running IdP server
        email: Email used for silent auto-authentication
        timeout: Request timeout in seconds
    """

    base_url: str = Field(default="http://localhost:5225", description="IdP base URL")
    email: Optional[str] = Field(default=None, description="Auto-auth email")
    timeout: int = Field(default=30, ge=1, description="Request timeout in seconds")


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact_pii: Whether to redact emails and subject ids from logs
    """

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    log_file: Path = Field(
        default=Path("logs/mock-idp.log"),
        description="Log file path"
    )
    redact_pii: bool = Field(
        default=False,
        description="Redact PII from logs"
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Args:
            v: Log level string

        Returns:
            Validated log level (uppercase)

        Raises:
            ValueError: If log level is not valid
        """
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return v_upper


class Config(BaseModel):
    """Root configuration model.

    Example:
        >>> config = Config(issuance=IssuanceConfig(policy="permissive"))
        >>> config.issuance.policy
        <IssuancePolicy.PERMISSIVE: 'permissive'>
        >>> config.directory.base_dn
        'dc=glauth,dc=com'
    """

    directory: DirectoryConfig = DirectoryConfig()
    signing: SigningConfig = SigningConfig()
    issuance: IssuanceConfig = IssuanceConfig()
    server: ServerConfig = ServerConfig()
    client: ClientConfig = ClientConfig()
    logging: LoggingConfig = LoggingConfig()
