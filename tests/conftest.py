"""
Shared pytest configuration and fixtures.

This module provides fixtures used across the unit and integration suites:
a throwaway signing certificate, a fake directory client and sample
directory entries.
"""

import re
from pathlib import Path
from typing import Any, Dict
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives.serialization import Encoding
from ldap3.utils.conv import escape_filter_chars

from mock_idp.config.schema import (
    Config,
    DirectoryConfig,
    IssuanceConfig,
    LoggingConfig,
    ServerConfig,
)
from mock_idp.idp.identity import derive_identity
from mock_idp.models.identity import ClaimSet
from mock_idp.models.saml import CertificateBundle
from mock_idp.saml.certificate_manager import generate_self_signed
from mock_idp.saml.signer import AssertionSigner


@pytest.fixture
def project_root() -> Path:
    """
    Return the project root directory.

    Returns:
        Path: Absolute path to the project root directory.
    """
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def signing_bundle() -> CertificateBundle:
    """Generate one throwaway RSA signing pair for the whole session."""
    return generate_self_signed(common_name="Test IdP", validity_days=30)


@pytest.fixture(scope="session")
def signing_cert_pem(signing_bundle: CertificateBundle) -> bytes:
    return signing_bundle.certificate.public_bytes(Encoding.PEM)


@pytest.fixture
def signer(signing_bundle: CertificateBundle) -> AssertionSigner:
    return AssertionSigner(signing_bundle)


@pytest.fixture
def directory_config() -> DirectoryConfig:
    return DirectoryConfig()


@pytest.fixture
def jane_entry() -> Dict[str, Any]:
    """Directory entry as returned by LdapDirectoryClient.search()."""
    return {
        "dn": "cn=jane,ou=people,dc=glauth,dc=com",
        "cn": "jane",
        "mail": "jane.doe@example.com",
        "uid": "jdoe",
        "givenname": "Jane",
        "sn": "Doe",
        "displayname": "Jane Doe",
        "employeeid": "1001",
        "alternatedsid": "alt-1001",
    }


FILTER_PATTERN = re.compile(r"^\((?P<attribute>[^=()]+)=(?P<value>.*)\)$")


def entry_matches(entry: Dict[str, Any], search_filter: str) -> bool:
    """Check an entry against a single (attribute=value) equality filter."""
    match = FILTER_PATTERN.match(search_filter)
    if match is None:
        raise AssertionError(f"Unexpected directory filter: {search_filter}")
    value = entry.get(match.group("attribute").lower())
    return value is not None and escape_filter_chars(str(value)) == match.group("value")


@pytest.fixture
def fake_directory_client(jane_entry: Dict[str, Any]) -> MagicMock:
    """Directory client double holding jane_entry.

    The directory contents are search.return_value; each search returns the
    entries that match its filter. Setting search.side_effect replaces the
    filtering entirely.
    """
    client = MagicMock()
    client.connect.return_value = MagicMock(name="connection")
    client.search.return_value = [jane_entry]

    def search(connection, base_dn, search_filter, attributes):
        return [e for e in client.search.return_value if entry_matches(e, search_filter)]

    client.search.side_effect = search
    return client


@pytest.fixture
def claim_set() -> ClaimSet:
    identity = derive_identity(None, "jane.doe@example.com", fallback_subject_id="1001")
    return ClaimSet(email=identity.email, subject_id=identity.subject_id, identity=identity)


@pytest.fixture
def app_config(tmp_path: Path) -> Config:
    """Configuration with log files under tmp_path."""
    return Config(
        directory=DirectoryConfig(),
        issuance=IssuanceConfig(policy="directory", allowed_domains=["example.com"]),
        server=ServerConfig(log_path=tmp_path / "server.log"),
        logging=LoggingConfig(log_file=tmp_path / "mock-idp.log"),
    )
