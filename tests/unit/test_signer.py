"""Unit tests for SAML response building and signing.

Tests XML signing functionality using signxml library, covering:
- AssertionSigner initialization
- Response structure (Issuer, Status, Subject, Conditions, attributes)
- Enveloped signature verification with XMLVerifier
- Error handling
"""

from datetime import timedelta

import pytest
from lxml import etree
from signxml import XMLVerifier
from signxml.exceptions import InvalidSignature

from mock_idp.models.saml import CertificateBundle
from mock_idp.saml.response_builder import (
    DS_NS,
    SAML_NS,
    SAMLP_NS,
    SAMLResponseBuilder,
    claims_to_attributes,
    generate_saml_id,
)
from mock_idp.saml.certificate_manager import convert_to_pem, generate_self_signed
from mock_idp.saml.signer import AssertionSigner, encode_response
from mock_idp.utils.exceptions import CertificateLoadError


ISSUER = "https://saml.example.com/entityid"
AUDIENCE = "https://sp.example.com"
ACS_URL = "https://sp.example.com/acs"


def sign(signer, claim_set, **overrides):
    kwargs = {
        "issuer": ISSUER,
        "audience": AUDIENCE,
        "destination_url": ACS_URL,
        "request_id": "_req-1",
        "claims": claim_set,
    }
    kwargs.update(overrides)
    return signer.sign_response(**kwargs)


class TestAssertionSignerInitialization:
    """Test AssertionSigner initialization."""

    def test_signer_initialization_success(self, signing_bundle):
        """Test AssertionSigner initializes with a valid bundle."""
        signer = AssertionSigner(signing_bundle)

        assert signer.cert_bundle is signing_bundle
        assert signer.signature_algorithm == "RSA-SHA256"
        assert signer.signer is not None

    def test_signer_initialization_invalid_algorithm(self, signing_bundle):
        """Test AssertionSigner rejects an unsupported algorithm."""
        with pytest.raises(ValueError, match="Unsupported signature algorithm"):
            AssertionSigner(signing_bundle, signature_algorithm="RSA-SHA1")

    def test_signer_requires_private_key(self, signing_bundle):
        """Test a bundle without a private key cannot sign."""
        bundle = CertificateBundle(
            certificate=signing_bundle.certificate,
            private_key=None,
            info=signing_bundle.info,
        )

        with pytest.raises(CertificateLoadError, match="private key"):
            AssertionSigner(bundle)


class TestSignedResponse:
    """Tests for signed Response documents."""

    def test_signature_verifies(self, signer, claim_set, signing_cert_pem):
        """Test the enveloped signature verifies and covers the Assertion."""
        # Act
        document = sign(signer, claim_set)

        # Assert
        result = XMLVerifier().verify(document.xml_content, x509_cert=signing_cert_pem)
        assert result.signed_xml.tag == f"{{{SAML_NS}}}Assertion"
        assert result.signed_xml.get("ID") == document.assertion_id

    def test_rsa_sha512_signature_verifies(self, signing_bundle, claim_set, signing_cert_pem):
        """Test signing with RSA-SHA512."""
        # Arrange
        signer = AssertionSigner(signing_bundle, signature_algorithm="RSA-SHA512")

        # Act
        document = sign(signer, claim_set)

        # Assert
        root = etree.fromstring(document.xml_content)
        method = root.find(f".//{{{DS_NS}}}SignatureMethod")
        assert method.get("Algorithm").endswith("rsa-sha512")
        XMLVerifier().verify(document.xml_content, x509_cert=signing_cert_pem)

    def test_tampered_response_fails_verification(self, signer, claim_set, signing_cert_pem):
        """Test that altering a signed attribute breaks the signature."""
        # Arrange
        document = sign(signer, claim_set)
        tampered = document.xml_content.replace(b"jane.doe@example.com", b"eve@example.com")

        # Act & Assert
        with pytest.raises(InvalidSignature):
            XMLVerifier().verify(tampered, x509_cert=signing_cert_pem)

    def test_signature_inside_assertion_after_issuer(self, signer, claim_set):
        """Test the signature replaces the placeholder after the Issuer."""
        # Act
        root = etree.fromstring(sign(signer, claim_set).xml_content)

        # Assert
        assertion = root.find(f"{{{SAML_NS}}}Assertion")
        children = [child.tag for child in assertion]
        assert children[0] == f"{{{SAML_NS}}}Issuer"
        assert children[1] == f"{{{DS_NS}}}Signature"
        assert len(root.findall(f".//{{{DS_NS}}}Signature")) == 1
        assert assertion.find(f"{{{DS_NS}}}Signature").get("Id") is None

    def test_response_structure(self, signer, claim_set):
        """Test issuer, status and protocol attributes of the Response."""
        # Act
        document = sign(signer, claim_set)
        root = etree.fromstring(document.xml_content)

        # Assert
        assert root.tag == f"{{{SAMLP_NS}}}Response"
        assert root.get("ID") == document.response_id
        assert root.get("Destination") == ACS_URL
        assert root.get("InResponseTo") == "_req-1"
        assert root.find(f"{{{SAML_NS}}}Issuer").text == ISSUER
        status_code = root.find(f"{{{SAMLP_NS}}}Status/{{{SAMLP_NS}}}StatusCode")
        assert status_code.get("Value").endswith("status:Success")

    def test_subject_and_conditions(self, signer, claim_set):
        """Test NameID, bearer confirmation and audience restriction."""
        # Act
        root = etree.fromstring(sign(signer, claim_set).xml_content)
        ns = {"saml": SAML_NS}

        # Assert
        assert root.findtext(".//saml:Subject/saml:NameID", namespaces=ns) == "jane.doe@example.com"
        data = root.find(".//saml:SubjectConfirmationData", namespaces=ns)
        assert data.get("Recipient") == ACS_URL
        assert data.get("InResponseTo") == "_req-1"
        assert root.findtext(".//saml:Conditions//saml:Audience", namespaces=ns) == AUDIENCE

    def test_attribute_statement(self, signer, claim_set):
        """Test the AttributeStatement carries the claim set."""
        # Act
        root = etree.fromstring(sign(signer, claim_set).xml_content)

        # Assert
        attributes = {
            attr.get("Name"): attr.findtext(f"{{{SAML_NS}}}AttributeValue")
            for attr in root.iter(f"{{{SAML_NS}}}Attribute")
        }
        assert attributes == {
            "email": "jane.doe@example.com",
            "subjectId": "1001",
            "id": "1001",
            "firstName": "Jane",
            "lastName": "Doe",
        }

    def test_optional_sp_parameters_omitted(self, signer, claim_set):
        """Test that missing SP parameters leave their elements out."""
        # Act
        root = etree.fromstring(
            sign(signer, claim_set, audience=None, destination_url=None, request_id=None).xml_content
        )

        # Assert
        assert root.get("Destination") is None
        assert root.get("InResponseTo") is None
        assert root.find(f".//{{{SAML_NS}}}AudienceRestriction") is None

    def test_validity_window(self, signer, claim_set):
        """Test NotOnOrAfter is validity_minutes after IssueInstant."""
        document = sign(signer, claim_set)

        assert document.not_on_or_after - document.issue_instant == timedelta(minutes=5)

    def test_create_signed_response_returns_bytes(self, signer, claim_set):
        """Test the bytes-returning entry point used by issuance."""
        # Act
        xml = signer.create_signed_response(
            issuer=ISSUER,
            audience=AUDIENCE,
            destination_url=ACS_URL,
            request_id="_req-1",
            claims=claim_set,
        )

        # Assert
        assert xml.startswith(b"<?xml")
        assert b"SignatureValue" in xml
        assert encode_response(xml).isascii()

    def test_override_key_and_certificate(self, signer, claim_set):
        """Test a per-call signing pair overrides the configured one."""
        # Arrange
        other = generate_self_signed("Other IdP", validity_days=1)

        # Act
        document = sign(signer, claim_set, private_key=other.private_key, certificate=other.certificate)

        # Assert
        XMLVerifier().verify(document.xml_content, x509_cert=convert_to_pem(other.certificate))


class TestResponseBuilder:
    """Tests for the unsigned response builder helpers."""

    def test_ids_are_unique_and_xml_safe(self):
        ids = {generate_saml_id() for _ in range(50)}

        assert len(ids) == 50
        assert all(value.startswith("_") for value in ids)

    def test_claims_to_attributes(self, claim_set):
        """Test subject id and identity claims are merged."""
        assert claims_to_attributes(claim_set) == {
            "email": "jane.doe@example.com",
            "subjectId": "1001",
            "id": "1001",
            "firstName": "Jane",
            "lastName": "Doe",
        }

    def test_builder_contains_signature_placeholder(self, claim_set):
        """Test the unsigned assertion carries the signature placeholder."""
        root = SAMLResponseBuilder().build(
            issuer=ISSUER, audience=None, destination_url=None, request_id=None, claims=claim_set
        )

        placeholder = root.find(f"{{{SAML_NS}}}Assertion/{{{DS_NS}}}Signature")
        assert placeholder.get("Id") == "placeholder"
