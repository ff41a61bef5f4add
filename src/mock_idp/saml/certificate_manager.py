"""Signing certificate management.

Loads the PEM certificate and private key used to sign SAML responses,
and generates self-signed pairs for local development.
"""

import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
)
from cryptography.x509.oid import NameOID

from ..config.schema import SigningConfig
from ..models.saml import CertificateBundle, CertificateInfo
from ..utils.exceptions import CertificateLoadError

logger = logging.getLogger(__name__)

DEFAULT_COMMON_NAME = "Mock IdP Signing"
DEFAULT_VALIDITY_DAYS = 365
DEFAULT_KEY_SIZE = 2048


def get_certificate_info(cert: x509.Certificate) -> CertificateInfo:
    """Extract certificate information for display and logging.

    Args:
        cert: X.509 certificate

    Returns:
        CertificateInfo dataclass with certificate details

    Example:
        >>> cert = load_pem_certificate(Path("certs/idp_cert.pem"))
        >>> get_certificate_info(cert).subject
        'CN=Mock IdP Signing'
    """
    public_key = cert.public_key()
    key_size = public_key.key_size if hasattr(public_key, "key_size") else None

    return CertificateInfo(
        subject=cert.subject.rfc4514_string(),
        issuer=cert.issuer.rfc4514_string(),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        serial_number=cert.serial_number,
        key_size=key_size,
    )


def check_expiration_warning(
    cert: x509.Certificate, warning_days: int = 30
) -> bool:
    """Check if certificate is expiring soon and log warning.

    Args:
        cert: X.509 certificate to check
        warning_days: Number of days before expiration to warn (default: 30)

    Returns:
        True if certificate expires within warning_days, False otherwise
    """
    now = datetime.now(timezone.utc)
    warning_date = now + timedelta(days=warning_days)

    if cert.not_valid_after_utc < warning_date:
        days_remaining = (cert.not_valid_after_utc - now).days
        logger.warning(
            f"Signing certificate expiring soon: {days_remaining} days remaining "
            f"(expires: {cert.not_valid_after_utc.strftime('%Y-%m-%d')})"
        )
        return True

    return False


def load_pem_certificate(cert_path: Path) -> x509.Certificate:
    """Load X.509 certificate from PEM file.

    Raises:
        CertificateLoadError: If certificate cannot be loaded
    """
    if not cert_path.exists():
        raise CertificateLoadError(
            f"Certificate file not found: {cert_path}. "
            f"Generate one with: mock-idp keys generate --out-dir {cert_path.parent}"
        )

    try:
        cert = x509.load_pem_x509_certificate(cert_path.read_bytes())
    except ValueError as e:
        raise CertificateLoadError(
            f"Failed to load PEM certificate from {cert_path}: {e}. "
            f"Ensure file is valid PEM format."
        ) from e

    logger.info(f"Loaded PEM certificate: {cert.subject.rfc4514_string()}")
    check_expiration_warning(cert)
    return cert


def load_pem_private_key(
    key_path: Path, password: Optional[bytes] = None
) -> rsa.RSAPrivateKey:
    """Load an RSA private key from PEM file.

    Raises:
        CertificateLoadError: If the key cannot be loaded or is not RSA
    """
    if not key_path.exists():
        raise CertificateLoadError(
            f"Private key file not found: {key_path}. "
            f"Ensure the file exists and path is correct."
        )

    try:
        private_key = serialization.load_pem_private_key(
            key_path.read_bytes(), password=password
        )
    except TypeError as e:
        raise CertificateLoadError(
            f"Failed to load private key from {key_path}: Incorrect password. "
            f"If key is encrypted, provide correct password."
        ) from e
    except ValueError as e:
        raise CertificateLoadError(
            f"Failed to load PEM private key from {key_path}: {e}. "
            f"Ensure file is valid PEM format."
        ) from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise CertificateLoadError(
            f"Private key in {key_path} is not an RSA key. "
            f"Only RSA-SHA256 and RSA-SHA512 signatures are supported."
        )

    # Never log key material
    logger.info(f"Loaded PEM private key from: {key_path.name}")
    return private_key


def generate_self_signed(
    common_name: str = DEFAULT_COMMON_NAME,
    validity_days: int = DEFAULT_VALIDITY_DAYS,
    key_size: int = DEFAULT_KEY_SIZE,
) -> CertificateBundle:
    """Generate a self-signed RSA signing certificate.

    Example:
        >>> bundle = generate_self_signed("Test IdP", validity_days=30)
        >>> bundle.info.key_size
        2048
    """
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.now(timezone.utc)

    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(minutes=1))
        .not_valid_after(now + timedelta(days=validity_days))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .sign(private_key, hashes.SHA256())
    )

    return CertificateBundle(
        certificate=certificate,
        private_key=private_key,
        info=get_certificate_info(certificate),
    )


def convert_to_pem(cert: x509.Certificate) -> bytes:
    """Convert certificate to PEM format bytes."""
    return cert.public_bytes(Encoding.PEM)


def convert_key_to_pem(private_key: rsa.RSAPrivateKey) -> bytes:
    """Convert an unencrypted private key to PKCS8 PEM bytes."""
    return private_key.private_bytes(
        encoding=Encoding.PEM,
        format=PrivateFormat.PKCS8,
        encryption_algorithm=NoEncryption(),
    )


def write_key_pair(
    bundle: CertificateBundle,
    out_dir: Path,
    cert_name: str = "idp_cert.pem",
    key_name: str = "idp_key.pem",
) -> Tuple[Path, Path]:
    """Write a certificate bundle as two PEM files.

    Returns:
        (cert_path, key_path)

    Raises:
        CertificateLoadError: If the files cannot be written
    """
    cert_path = out_dir / cert_name
    key_path = out_dir / key_name

    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        cert_path.write_bytes(convert_to_pem(bundle.certificate))
        key_path.write_bytes(convert_key_to_pem(bundle.private_key))
        key_path.chmod(0o600)
    except OSError as e:
        raise CertificateLoadError(
            f"Failed to write key pair to {out_dir}: {e}. "
            f"Ensure the directory is writable."
        ) from e

    logger.info(f"Wrote signing certificate to {cert_path} and key to {key_path}")
    return cert_path, key_path


def load_certificate_bundle(cert_path: Path, key_path: Path) -> CertificateBundle:
    """Load a PEM certificate and its private key.

    Raises:
        CertificateLoadError: If either file cannot be loaded
    """
    certificate = load_pem_certificate(cert_path)
    private_key = load_pem_private_key(key_path)

    return CertificateBundle(
        certificate=certificate,
        private_key=private_key,
        info=get_certificate_info(certificate),
    )


def load_signing_bundle(config: SigningConfig) -> CertificateBundle:
    """Load the signing pair named in the configuration.

    With neither path configured an ephemeral self-signed pair is generated.
    SPs must then be given the new certificate after every restart.

    Raises:
        CertificateLoadError: If only one of cert_path and key_path is set,
            or if the files cannot be loaded
    """
    if config.cert_path is None and config.key_path is None:
        logger.warning(
            "No signing certificate configured; using an ephemeral self-signed pair. "
            "Set MOCK_IDP_CERT_PATH and MOCK_IDP_KEY_PATH for a stable key."
        )
        return generate_self_signed()

    if config.cert_path is None or config.key_path is None:
        raise CertificateLoadError(
            "Both signing.cert_path and signing.key_path must be set. "
            "Fix: set both in config.json or via MOCK_IDP_CERT_PATH / MOCK_IDP_KEY_PATH."
        )

    return load_certificate_bundle(config.cert_path, config.key_path)
