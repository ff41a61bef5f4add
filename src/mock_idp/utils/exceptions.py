"""Custom exception classes for the mock Identity Provider.

All exceptions inherit from MockIdPError to allow catching all custom exceptions.
"""

from typing import Optional


class MockIdPError(Exception):
    """Base exception for all mock IdP custom exceptions."""

    pass


class ValidationError(MockIdPError):
    """Raised when caller input is malformed or missing.

    Examples:
        - Email missing or without '@'
        - Empty subject identifier
        - Empty directory search key or attribute list
    """

    pass


class ConfigurationError(MockIdPError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Missing required configuration
        - Invalid configuration file format
        - Configuration value out of range
    """

    pass


class LookupFailure(MockIdPError):
    """Raised when a directory lookup cannot be completed.

    Distinct from "no match": a lookup that ran and found nothing returns
    None, a lookup that could not run raises this.

    Examples:
        - Directory unreachable or connect timeout
        - Bind rejected for the service identity
        - Search operation error
    """

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        super().__init__(message)
        self.operation = operation


class AccessDenied(MockIdPError):
    """Raised when an email fails the accepted-domain check.

    Examples:
        - user@blocked.org when only example.com is accepted
    """

    def __init__(self, message: str, email: Optional[str] = None) -> None:
        super().__init__(message)
        self.email = email


class SAMLError(MockIdPError):
    """Raised when SAML response generation or signing errors occur.

    Examples:
        - Certificate loading failure
        - Signing failure
        - Invalid SAML document structure
    """

    pass


class SignerFailure(SAMLError):
    """Raised when the assertion signer fails to produce a document.

    Never swallowed: always surfaces as a server error.
    """

    pass


class CertificateLoadError(SAMLError):
    """Raised when certificate or private key loading fails.

    Examples:
        - Certificate file not found
        - Invalid PEM content
        - Incorrect password for encrypted key
    """

    pass


def error_status(exception: Exception) -> int:
    """Map an exception to the HTTP status code surfaced to callers.

    Args:
        exception: The exception to map

    Returns:
        HTTP status code

    Example:
        >>> error_status(AccessDenied("blocked"))
        403
        >>> error_status(ValidationError("Email is required"))
        400
    """
    if isinstance(exception, ValidationError):
        return 400
    if isinstance(exception, AccessDenied):
        return 403
    return 500
