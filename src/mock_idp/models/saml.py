"""Data models for SAML response issuance and certificate handling."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from cryptography import x509


@dataclass
class CertificateInfo:
    """Certificate information for display and logging.

    Attributes:
        subject: Certificate subject Distinguished Name (DN)
        issuer: Certificate issuer Distinguished Name (DN)
        not_before: Certificate validity start date
        not_after: Certificate expiration date
        serial_number: Certificate serial number
        key_size: Public key size in bits (e.g., 2048, 4096)
    """

    subject: str
    issuer: str
    not_before: datetime
    not_after: datetime
    serial_number: int
    key_size: Optional[int]


@dataclass
class CertificateBundle:
    """Signing certificate with its private key.

    Attributes:
        certificate: X.509 certificate embedded in KeyInfo
        private_key: Private key used for signing
        info: Extracted certificate information
    """

    certificate: x509.Certificate
    private_key: Optional[Any]
    info: CertificateInfo


@dataclass
class SAMLResponseDocument:
    """Signed SAML Response produced by the signer.

    Attributes:
        response_id: ID of the samlp:Response element
        assertion_id: ID of the signed saml:Assertion
        issue_instant: Timestamp when the response was issued
        not_on_or_after: End of the assertion validity period
        xml_content: Serialized signed XML
        signature: Base64 SignatureValue
    """

    response_id: str
    assertion_id: str
    issue_instant: datetime
    not_on_or_after: datetime
    xml_content: bytes
    signature: str


@dataclass
class FormField:
    """One hidden input of an auto-post form."""

    name: str
    value: Optional[str]
