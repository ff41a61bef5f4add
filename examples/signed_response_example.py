"""Signed SAML Response Example.

This example issues a signed SAML Response the same way the server does,
without starting Flask or contacting a directory.

Key features demonstrated:
- Generating a throwaway signing key pair
- Extracting SP parameters from an encoded AuthnRequest
- Issuing under the permissive policy
- Verifying the signature of the issued assertion
"""

import base64
import sys
from pathlib import Path

from lxml import etree
from signxml import XMLVerifier

# Add src to path for running as standalone script
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from mock_idp.config.schema import IssuancePolicy
from mock_idp.idp.issuance import IssuanceService
from mock_idp.models.identity import Issued
from mock_idp.saml.certificate_manager import generate_self_signed
from mock_idp.saml.signer import AssertionSigner


AUTHN_REQUEST = (
    '<samlp:AuthnRequest xmlns:samlp="urn:oasis:names:tc:SAML:2.0:protocol" '
    'xmlns:saml="urn:oasis:names:tc:SAML:2.0:assertion" ID="_example-request" '
    'Version="2.0" AssertionConsumerServiceURL="https://sp.example.com/acs">'
    "<saml:Conditions><saml:AudienceRestriction>"
    "<saml:Audience>https://sp.example.com</saml:Audience>"
    "</saml:AudienceRestriction></saml:Conditions>"
    "</samlp:AuthnRequest>"
)


def example_issue_response():
    """Example 1: Issue a signed response for an encoded AuthnRequest."""
    print("\n" + "=" * 70)
    print("Example 1: Issuing a Signed Response")
    print("=" * 70)

    bundle = generate_self_signed(common_name="Example IdP", validity_days=1)
    print(f"\n✓ Signing certificate: {bundle.info.subject} ({bundle.info.key_size}-bit)")

    service = IssuanceService(policy=IssuancePolicy.PERMISSIVE, signer=AssertionSigner(bundle))
    result = service.issue({
        "email": "jane.doe@example.com",
        "subjectId": "1001",
        "SAMLRequest": base64.b64encode(AUTHN_REQUEST.encode("utf-8")).decode("ascii"),
        "relayState": "example-state",
    })

    assert isinstance(result, Issued)
    print(f"✓ Claims: {result.claims.to_dict()['raw']}")
    print("\n✓ Auto-post document (first 300 chars):")
    print("-" * 70)
    print(result.document[:300] + "...")
    print("-" * 70)

    return bundle, result


def example_verify_response(bundle, result):
    """Example 2: Verify the issued assertion like a service provider would."""
    print("\n" + "=" * 70)
    print("Example 2: Verifying the Assertion Signature")
    print("=" * 70)

    form_input = etree.HTML(result.document).find(".//input[@name='SAMLResponse']")
    xml_content = base64.b64decode(form_input.get("value"))
    cert_pem = AssertionSigner(bundle).certificate_pem

    verified = XMLVerifier().verify(xml_content, x509_cert=cert_pem)
    print(f"\n✓ Signature valid for assertion {verified.signed_xml.get('ID')}")


def main():
    bundle, result = example_issue_response()
    example_verify_response(bundle, result)


if __name__ == "__main__":
    main()
