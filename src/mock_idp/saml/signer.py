"""XML signing of SAML Responses using signxml.

The assertion inside each Response is signed with an enveloped XML Signature
(exclusive C14N, RSA-SHA256 or RSA-SHA512, SHA-256 digest). The signing
certificate is embedded in KeyInfo so SPs can match it against metadata.
"""

import base64
import logging
from typing import Any, Optional

from cryptography.hazmat.primitives import serialization
from lxml import etree
from signxml import CanonicalizationMethod, DigestAlgorithm, SignatureMethod, XMLSigner
from signxml.exceptions import InvalidInput

from ..models.identity import ClaimSet
from ..models.saml import CertificateBundle, SAMLResponseDocument
from ..utils.exceptions import CertificateLoadError, SignerFailure
from .response_builder import DS_NS, SAML_NS, SAMLResponseBuilder, parse_saml_time

logger = logging.getLogger(__name__)

SIGNATURE_ALGORITHMS = {
    "RSA-SHA256": SignatureMethod.RSA_SHA256,
    "RSA-SHA512": SignatureMethod.RSA_SHA512,
}


def _to_pem(value: Any, private: bool) -> bytes:
    if isinstance(value, (bytes, str)):
        return value.encode("utf-8") if isinstance(value, str) else value
    if private:
        return value.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    return value.public_bytes(encoding=serialization.Encoding.PEM)


class AssertionSigner:
    """Produce signed SAML Responses.

    The signer is built once at start-up and shared by all requests; it keeps
    no per-request state.

    Attributes:
        cert_bundle: Certificate bundle containing certificate and private key
        signature_algorithm: Signature algorithm (RSA-SHA256, RSA-SHA512)
        builder: Response builder producing the unsigned document
        signer: XMLSigner instance configured with signature algorithm

    Example:
        >>> signer = AssertionSigner(generate_self_signed())
        >>> xml = signer.create_signed_response(
        ...     issuer="https://saml.example.com/entityid",
        ...     audience="https://sp.example.com",
        ...     destination_url="https://sp.example.com/acs",
        ...     request_id="_req1",
        ...     claims=claim_set,
        ... )
        >>> b"<ds:Signature" in xml
        True
    """

    def __init__(
        self,
        cert_bundle: CertificateBundle,
        signature_algorithm: str = "RSA-SHA256",
        validity_minutes: int = 5,
    ) -> None:
        """Initialize the signer.

        Raises:
            CertificateLoadError: If the bundle has no certificate or no private key
            ValueError: If the signature algorithm is unsupported
        """
        if not cert_bundle.certificate:
            raise CertificateLoadError(
                "Certificate bundle must contain a valid certificate. "
                "Ensure certificate was loaded correctly."
            )

        if not cert_bundle.private_key:
            raise CertificateLoadError(
                "Certificate bundle must contain a private key for signing. "
                "Ensure signing.key_path points at the matching PEM key."
            )

        if signature_algorithm not in SIGNATURE_ALGORITHMS:
            raise ValueError(
                f"Unsupported signature algorithm: {signature_algorithm}. "
                f"Supported algorithms: {', '.join(SIGNATURE_ALGORITHMS)}"
            )

        self.cert_bundle = cert_bundle
        self.signature_algorithm = signature_algorithm
        self.builder = SAMLResponseBuilder(validity_minutes=validity_minutes)
        self.signer = XMLSigner(
            signature_algorithm=SIGNATURE_ALGORITHMS[signature_algorithm],
            digest_algorithm=DigestAlgorithm.SHA256,
            c14n_algorithm=CanonicalizationMethod.EXCLUSIVE_XML_CANONICALIZATION_1_0,
        )

        logger.info(
            f"AssertionSigner initialized: algorithm={signature_algorithm}, "
            f"certificate={cert_bundle.info.subject}"
        )

    @property
    def certificate_pem(self) -> bytes:
        return _to_pem(self.cert_bundle.certificate, private=False)

    def sign_response(
        self,
        issuer: str,
        audience: Optional[str],
        destination_url: Optional[str],
        request_id: Optional[str],
        claims: ClaimSet,
        private_key: Optional[Any] = None,
        certificate: Optional[Any] = None,
    ) -> SAMLResponseDocument:
        """Build and sign a Response.

        Args:
            issuer: IdP entity id
            audience: SP audience (optional)
            destination_url: ACS URL (optional)
            request_id: AuthnRequest ID answered (optional)
            claims: Claim set placed in the assertion
            private_key: Override signing key (PEM bytes or key object)
            certificate: Override signing certificate (PEM bytes or certificate object)

        Returns:
            SAMLResponseDocument with the serialized signed XML

        Raises:
            SignerFailure: If the document cannot be built or signed
        """
        key_pem = _to_pem(private_key or self.cert_bundle.private_key, private=True)
        cert_pem = _to_pem(certificate or self.cert_bundle.certificate, private=False)

        try:
            response = self.builder.build(
                issuer=issuer,
                audience=audience,
                destination_url=destination_url,
                request_id=request_id,
                claims=claims,
            )
            assertion = response.find(f"{{{SAML_NS}}}Assertion")
            assertion_id = assertion.get("ID")
            issue_instant = parse_saml_time(assertion.get("IssueInstant"))
            not_on_or_after = parse_saml_time(
                assertion.find(f"{{{SAML_NS}}}Conditions").get("NotOnOrAfter")
            )

            signed = self.signer.sign(
                response,
                key=key_pem,
                cert=cert_pem,
                reference_uri=f"#{assertion_id}",
            )
        except (InvalidInput, etree.LxmlError, ValueError, TypeError) as e:
            logger.error(f"Failed to sign SAML response: {e}")
            raise SignerFailure(
                f"Failed to sign SAML response: {e}. "
                f"Check the signing certificate and private key."
            ) from e

        sig_value_elem = signed.find(f".//{{{DS_NS}}}SignatureValue")
        if sig_value_elem is None or sig_value_elem.text is None:
            raise SignerFailure(
                "Failed to extract SignatureValue from signed response. "
                "This indicates a signing operation error."
            )

        xml_content = etree.tostring(signed, xml_declaration=True, encoding="UTF-8")
        document = SAMLResponseDocument(
            response_id=signed.get("ID"),
            assertion_id=assertion_id,
            issue_instant=issue_instant,
            not_on_or_after=not_on_or_after,
            xml_content=xml_content,
            signature=sig_value_elem.text,
        )

        logger.info(f"SAML response signed: response={document.response_id}, assertion={assertion_id}")
        return document

    def create_signed_response(
        self,
        issuer: str,
        audience: Optional[str],
        destination_url: Optional[str],
        request_id: Optional[str],
        claims: ClaimSet,
        private_key: Optional[Any] = None,
        certificate: Optional[Any] = None,
    ) -> bytes:
        """Build and sign a Response, returning the serialized XML bytes.

        Raises:
            SignerFailure: If the document cannot be built or signed
        """
        return self.sign_response(
            issuer, audience, destination_url, request_id, claims, private_key, certificate
        ).xml_content


def encode_response(xml_content: bytes) -> str:
    """Base64-encode a signed Response for the SAMLResponse form field."""
    return base64.b64encode(xml_content).decode("ascii")
