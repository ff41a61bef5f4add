"""SAML response issuance module.

This module builds, signs and delivers SAML 2.0 Responses: certificate
loading, lxml response construction, signxml signing and the HTTP-POST
binding auto-submit form.
"""

from mock_idp.saml.certificate_manager import (
    generate_self_signed,
    load_certificate_bundle,
    load_signing_bundle,
    write_key_pair,
)
from mock_idp.saml.post_form import render_auto_post_form, response_form_fields
from mock_idp.saml.response_builder import SAMLResponseBuilder, generate_saml_id
from mock_idp.saml.signer import AssertionSigner, encode_response

__all__ = [
    "AssertionSigner",
    "SAMLResponseBuilder",
    "encode_response",
    "generate_saml_id",
    "generate_self_signed",
    "load_certificate_bundle",
    "load_signing_bundle",
    "render_auto_post_form",
    "response_form_fields",
    "write_key_pair",
]
