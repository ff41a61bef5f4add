"""SAML 2.0 Response construction.

Builds an unsigned samlp:Response wrapping one saml:Assertion with lxml.
The assertion carries a ds:Signature placeholder after its Issuer so the
signer can put the enveloped signature where the SAML schema expects it.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

from lxml import etree

from ..models.identity import ClaimSet

logger = logging.getLogger(__name__)

SAML_NS = "urn:oasis:names:tc:SAML:2.0:assertion"
SAMLP_NS = "urn:oasis:names:tc:SAML:2.0:protocol"
DS_NS = "http://www.w3.org/2000/09/xmldsig#"

NAMEID_FORMAT_EMAIL = "urn:oasis:names:tc:SAML:1.1:nameid-format:emailAddress"
CONFIRMATION_BEARER = "urn:oasis:names:tc:SAML:2.0:cm:bearer"
STATUS_SUCCESS = "urn:oasis:names:tc:SAML:2.0:status:Success"
AUTHN_CONTEXT_PPT = "urn:oasis:names:tc:SAML:2.0:ac:classes:PasswordProtectedTransport"
ATTRNAME_FORMAT_BASIC = "urn:oasis:names:tc:SAML:2.0:attrname-format:basic"

SAML_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def generate_saml_id() -> str:
    """Generate a unique SAML ID (XML ID type: must not start with a digit).

    Example:
        >>> generate_saml_id().startswith("_")
        True
    """
    return f"_{uuid.uuid4().hex}"


def format_saml_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime(SAML_TIME_FORMAT)


def parse_saml_time(value: str) -> datetime:
    return datetime.strptime(value, SAML_TIME_FORMAT).replace(tzinfo=timezone.utc)


def claims_to_attributes(claims: ClaimSet) -> Dict[str, str]:
    """Flatten a claim set into SAML attribute name/value pairs.

    Example:
        >>> attrs = claims_to_attributes(claim_set)
        >>> sorted(attrs)
        ['email', 'firstName', 'id', 'lastName', 'subjectId']
    """
    attributes = {
        "email": claims.email,
        "subjectId": claims.subject_id,
    }
    for name, value in claims.identity.to_claims().items():
        attributes.setdefault(name, value)
    return attributes


class SAMLResponseBuilder:
    """Assemble unsigned SAML Responses.

    Attributes:
        validity_minutes: Assertion validity period in minutes

    Example:
        >>> builder = SAMLResponseBuilder(validity_minutes=5)
        >>> root = builder.build(
        ...     issuer="https://saml.example.com/entityid",
        ...     audience="https://sp.example.com",
        ...     destination_url="https://sp.example.com/acs",
        ...     request_id="_req1",
        ...     claims=claim_set,
        ... )
        >>> root.get("InResponseTo")
        '_req1'
    """

    def __init__(self, validity_minutes: int = 5) -> None:
        self.validity_minutes = validity_minutes

    def build(
        self,
        issuer: str,
        audience: Optional[str],
        destination_url: Optional[str],
        request_id: Optional[str],
        claims: ClaimSet,
        now: Optional[datetime] = None,
    ) -> etree._Element:
        """Build the samlp:Response element.

        Optional SP parameters that are missing are left out of the document
        (no Destination, Recipient, InResponseTo or AudienceRestriction).

        Returns:
            samlp:Response root element, unsigned
        """
        now = now or datetime.now(timezone.utc)
        issue_instant = format_saml_time(now)
        not_on_or_after = format_saml_time(now + timedelta(minutes=self.validity_minutes))
        response_id = generate_saml_id()
        assertion_id = generate_saml_id()

        response = etree.Element(
            f"{{{SAMLP_NS}}}Response",
            nsmap={"samlp": SAMLP_NS, "saml": SAML_NS},
            attrib={"ID": response_id, "Version": "2.0", "IssueInstant": issue_instant},
        )
        if destination_url:
            response.set("Destination", destination_url)
        if request_id:
            response.set("InResponseTo", request_id)

        etree.SubElement(response, f"{{{SAML_NS}}}Issuer").text = issuer

        status = etree.SubElement(response, f"{{{SAMLP_NS}}}Status")
        etree.SubElement(status, f"{{{SAMLP_NS}}}StatusCode", attrib={"Value": STATUS_SUCCESS})

        assertion = etree.SubElement(
            response,
            f"{{{SAML_NS}}}Assertion",
            attrib={"ID": assertion_id, "Version": "2.0", "IssueInstant": issue_instant},
        )
        etree.SubElement(assertion, f"{{{SAML_NS}}}Issuer").text = issuer

        # Replaced by the enveloped signature
        etree.SubElement(
            assertion, f"{{{DS_NS}}}Signature", nsmap={"ds": DS_NS}, attrib={"Id": "placeholder"}
        )

        self._add_subject(assertion, claims.email, destination_url, request_id, not_on_or_after)
        self._add_conditions(assertion, issue_instant, not_on_or_after, audience)
        self._add_authn_statement(assertion, issue_instant, assertion_id)
        self._add_attribute_statement(assertion, claims_to_attributes(claims))

        logger.debug(
            f"Built SAML Response {response_id} with assertion {assertion_id} "
            f"(audience={audience}, destination={destination_url})"
        )
        return response

    def _add_subject(
        self,
        assertion: etree._Element,
        name_id_value: str,
        recipient: Optional[str],
        in_response_to: Optional[str],
        not_on_or_after: str,
    ) -> None:
        subject = etree.SubElement(assertion, f"{{{SAML_NS}}}Subject")
        name_id = etree.SubElement(
            subject, f"{{{SAML_NS}}}NameID", attrib={"Format": NAMEID_FORMAT_EMAIL}
        )
        name_id.text = name_id_value

        confirmation = etree.SubElement(
            subject,
            f"{{{SAML_NS}}}SubjectConfirmation",
            attrib={"Method": CONFIRMATION_BEARER},
        )
        data = etree.SubElement(
            confirmation,
            f"{{{SAML_NS}}}SubjectConfirmationData",
            attrib={"NotOnOrAfter": not_on_or_after},
        )
        if recipient:
            data.set("Recipient", recipient)
        if in_response_to:
            data.set("InResponseTo", in_response_to)

    def _add_conditions(
        self,
        assertion: etree._Element,
        not_before: str,
        not_on_or_after: str,
        audience: Optional[str],
    ) -> None:
        conditions = etree.SubElement(
            assertion,
            f"{{{SAML_NS}}}Conditions",
            attrib={"NotBefore": not_before, "NotOnOrAfter": not_on_or_after},
        )
        if audience:
            restriction = etree.SubElement(conditions, f"{{{SAML_NS}}}AudienceRestriction")
            etree.SubElement(restriction, f"{{{SAML_NS}}}Audience").text = audience

    def _add_authn_statement(
        self, assertion: etree._Element, authn_instant: str, session_index: str
    ) -> None:
        statement = etree.SubElement(
            assertion,
            f"{{{SAML_NS}}}AuthnStatement",
            attrib={"AuthnInstant": authn_instant, "SessionIndex": session_index},
        )
        context = etree.SubElement(statement, f"{{{SAML_NS}}}AuthnContext")
        etree.SubElement(context, f"{{{SAML_NS}}}AuthnContextClassRef").text = AUTHN_CONTEXT_PPT

    def _add_attribute_statement(
        self, assertion: etree._Element, attributes: Dict[str, str]
    ) -> None:
        statement = etree.SubElement(assertion, f"{{{SAML_NS}}}AttributeStatement")
        for name, value in attributes.items():
            attribute = etree.SubElement(
                statement,
                f"{{{SAML_NS}}}Attribute",
                attrib={"Name": name, "NameFormat": ATTRNAME_FORMAT_BASIC},
            )
            etree.SubElement(attribute, f"{{{SAML_NS}}}AttributeValue").text = str(value)
