"""Issue-vs-redirect decision for SAML assertion requests.

The IssuanceService takes the fields of an inbound auth request, applies
the configured IssuancePolicy and ends in exactly one of two outcomes:
an Issued auto-post document or a Redirect to the interactive login page.
Invalid input, denied domains and signer failures raise instead.
"""

import logging
import time
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import urlencode

from ..config.schema import IssuancePolicy
from ..directory.resolver import IdentityResolver
from ..logging_audit.audit import (
    ACCESS_DENIED,
    ASSERTION_ISSUED,
    ISSUANCE_REDIRECTED,
    LOOKUP_FAILED,
    log_audit_event,
)
from ..models.identity import (
    ClaimSet,
    IssuanceResult,
    Issued,
    ProtocolParameters,
    Redirect,
)
from ..saml.post_form import render_auto_post_form, response_form_fields
from ..saml.signer import AssertionSigner, encode_response
from ..utils.exceptions import AccessDenied, LookupFailure, SignerFailure, ValidationError
from .identity import derive_identity
from .request_extractor import (
    FIELD_ACS_URL,
    FIELD_AUDIENCE,
    FIELD_RELAY_STATE,
    FIELD_REQUEST_ID,
    FIELD_SAML_REQUEST,
    extract_protocol_parameters,
)

logger = logging.getLogger(__name__)

FIELD_EMAIL = "email"
FIELD_SUBJECT_ID = "subjectId"


def is_allowed_domain(email: str, allowed_domains: Iterable[str]) -> bool:
    """Check an email against the accepted-domain allow-list.

    The email's domain must equal an allowed domain or be a subdomain of
    one. Matching is case-insensitive. An empty allow-list accepts all.

    Example:
        >>> is_allowed_domain("jane@corp.example.com", ["example.com"])
        True
        >>> is_allowed_domain("jane@badexample.com", ["example.com"])
        False
    """
    domains = [d.lower() for d in allowed_domains]
    if not domains:
        return True

    if "@" not in email:
        return False
    email_domain = email.rsplit("@", 1)[1].lower()

    return any(
        email_domain == domain or email_domain.endswith(f".{domain}")
        for domain in domains
    )


def build_login_url(
    login_path: str, protocol: ProtocolParameters, saml_request: Optional[str] = None
) -> str:
    """Build the interactive login URL carrying the SP parameters forward.

    Example:
        >>> build_login_url("/saml/login", ProtocolParameters(request_id="_r1"))
        '/saml/login?id=_r1'
    """
    query = {
        FIELD_AUDIENCE: protocol.audience,
        FIELD_ACS_URL: protocol.destination_url,
        FIELD_REQUEST_ID: protocol.request_id,
        FIELD_RELAY_STATE: protocol.relay_state,
        FIELD_SAML_REQUEST: saml_request,
    }
    query = {k: v for k, v in query.items() if v}
    if not query:
        return login_path
    return f"{login_path}?{urlencode(query)}"


def _field(params: Mapping[str, Any], name: str) -> Optional[str]:
    value = params.get(name)
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


class IssuanceService:
    """Decide whether to issue a signed assertion or redirect to login.

    One instance is built at start-up and shared by all requests.

    Attributes:
        policy: Issuance policy in effect
        signer: Assertion signer
        resolver: Identity resolver (required by the directory policy)
        entity_id: Issuer placed in every response
        allowed_domains: Accepted email domains (directory policy)
        login_path: Interactive login entry point used as redirect target

    Example:
        >>> service = IssuanceService(
        ...     policy=IssuancePolicy.DIRECTORY,
        ...     signer=signer,
        ...     resolver=resolver,
        ...     entity_id="https://saml.example.com/entityid",
        ...     allowed_domains=["example.com"],
        ... )
        >>> result = service.issue({"email": "jane.doe@example.com", "subjectId": "alt-1",
        ...                         "acsUrl": "https://sp.example.com/acs"})
        >>> isinstance(result, (Issued, Redirect))
        True
    """

    def __init__(
        self,
        policy: IssuancePolicy,
        signer: AssertionSigner,
        resolver: Optional[IdentityResolver] = None,
        entity_id: str = "https://saml.example.com/entityid",
        allowed_domains: Optional[Iterable[str]] = None,
        login_path: str = "/saml/login",
    ) -> None:
        if policy == IssuancePolicy.DIRECTORY and resolver is None:
            raise ValueError("The directory issuance policy requires an IdentityResolver")

        self.policy = policy
        self.signer = signer
        self.resolver = resolver
        self.entity_id = entity_id
        self.allowed_domains = [d.lower() for d in (allowed_domains or [])]
        self.login_path = login_path

    def issue(self, params: Mapping[str, Any]) -> IssuanceResult:
        """Process one auth request.

        Args:
            params: Request fields (email, subjectId, id, audience, acsUrl,
                relayState, SAMLRequest)

        Returns:
            Issued with the auto-post document, or Redirect to the login page

        Raises:
            ValidationError: If email or subject id is missing or malformed,
                or no ACS URL can be determined
            AccessDenied: If the email domain is not accepted (directory policy)
            SignerFailure: If the signer fails
        """
        start_time = time.time()

        email = _field(params, FIELD_EMAIL)
        subject_id = _field(params, FIELD_SUBJECT_ID)

        if not email or "@" not in email:
            raise ValidationError("A valid email address is required")
        if not subject_id:
            raise ValidationError("Subject id is required")

        protocol = extract_protocol_parameters(params)
        if not protocol.destination_url:
            raise ValidationError(
                "Assertion Consumer Service URL is required. "
                "Provide acsUrl or a SAMLRequest carrying AssertionConsumerServiceURL."
            )

        audit_details = {
            "policy": self.policy.value,
            "request_id": protocol.request_id,
            "audience": protocol.audience,
        }

        if self.policy == IssuancePolicy.PERMISSIVE:
            identity = derive_identity(None, email)
            claims = ClaimSet(email=email, subject_id=subject_id, identity=identity)
        else:
            if not is_allowed_domain(email, self.allowed_domains):
                log_audit_event(ACCESS_DENIED, {
                    **audit_details,
                    "status": "denied",
                    "error_message": f"Email domain not accepted: {email}",
                })
                raise AccessDenied(f"Email domain not accepted: {email}", email=email)

            try:
                record = self.resolver.resolve_by_subject_id(subject_id)
            except LookupFailure as e:
                logger.warning(f"Directory lookup failed, redirecting to login: {e}")
                log_audit_event(LOOKUP_FAILED, {
                    **audit_details,
                    "status": "redirected",
                    "error_message": str(e),
                    "operation": e.operation,
                })
                return self._redirect(protocol, params)

            if record is None:
                log_audit_event(ISSUANCE_REDIRECTED, {
                    **audit_details,
                    "status": "redirected",
                    "error_message": "No directory match",
                })
                return self._redirect(protocol, params)

            identity = derive_identity(record, email, fallback_subject_id=subject_id)
            claims = ClaimSet(
                email=identity.email,
                subject_id=identity.subject_id,
                identity=identity,
            )

        try:
            xml_content = self.signer.create_signed_response(
                issuer=self.entity_id,
                audience=protocol.audience,
                destination_url=protocol.destination_url,
                request_id=protocol.request_id,
                claims=claims,
            )
        except SignerFailure:
            raise
        except Exception as e:
            raise SignerFailure(f"Assertion signer failed: {e}") from e

        document = render_auto_post_form(
            protocol.destination_url,
            response_form_fields(protocol.relay_state, encode_response(xml_content)),
        )

        log_audit_event(ASSERTION_ISSUED, {
            **audit_details,
            "status": "success",
            "subject_id": claims.subject_id,
            "duration": time.time() - start_time,
        })
        return Issued(document=document, relay_state=protocol.relay_state, claims=claims)

    def _redirect(self, protocol: ProtocolParameters, params: Mapping[str, Any]) -> Redirect:
        return Redirect(
            target=build_login_url(
                self.login_path, protocol, _field(params, FIELD_SAML_REQUEST)
            )
        )
