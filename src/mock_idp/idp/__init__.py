"""Identity resolution and assertion issuance pipeline."""

from mock_idp.idp.identity import derive_identity, email_digest, names_from_email
from mock_idp.idp.issuance import IssuanceService, build_login_url, is_allowed_domain
from mock_idp.idp.request_extractor import extract_protocol_parameters

__all__ = [
    "IssuanceService",
    "build_login_url",
    "derive_identity",
    "email_digest",
    "extract_protocol_parameters",
    "is_allowed_domain",
    "names_from_email",
]
