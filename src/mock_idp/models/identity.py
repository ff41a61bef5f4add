"""Data models for directory records, identities and protocol parameters.

These dataclasses are created per request and discarded once the response
has been written. None of them is shared between requests.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Union


@dataclass
class DirectoryRecord:
    """One entry returned by a directory search.

    Attributes:
        dn: Distinguished name (unique key within the directory)
        cn: Common name
        mail: Email address
        uid: User id
        given_name: Given name (givenName)
        surname: Surname (sn)
        display_name: Display name
        employee_id: Employee identifier (employeeid)
        alternate_subject_id: Alternate subject identifier (alternatedsid)
    """

    dn: str
    cn: Optional[str] = None
    mail: Optional[str] = None
    uid: Optional[str] = None
    given_name: Optional[str] = None
    surname: Optional[str] = None
    display_name: Optional[str] = None
    employee_id: Optional[str] = None
    alternate_subject_id: Optional[str] = None


@dataclass(frozen=True)
class CanonicalIdentity:
    """Normalized identity used for assertion issuance.

    Attributes:
        subject_id: Authoritative subject identifier (never empty)
        email: Email address
        first_name: First name
        last_name: Last name
    """

    subject_id: str
    email: str
    first_name: str
    last_name: str

    def __post_init__(self) -> None:
        if not self.subject_id:
            raise ValueError("CanonicalIdentity.subject_id must be non-empty")

    def to_claims(self) -> Dict[str, str]:
        """Return the identity as SAML attribute claims."""
        return {
            "id": self.subject_id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
        }


@dataclass
class ProtocolParameters:
    """SP protocol parameters normalized from the inbound request.

    Attributes:
        audience: SP entity identifier the assertion is restricted to
        destination_url: Assertion Consumer Service URL
        request_id: ID of the AuthnRequest being answered (InResponseTo)
        relay_state: Opaque SP state, passed through untouched
    """

    audience: Optional[str] = None
    destination_url: Optional[str] = None
    request_id: Optional[str] = None
    relay_state: Optional[str] = None


@dataclass(frozen=True)
class ClaimSet:
    """Claims handed to the assertion signer.

    Attributes:
        email: Email placed in the NameID
        subject_id: Subject identifier claim
        identity: Full canonical identity record
    """

    email: str
    subject_id: str
    identity: CanonicalIdentity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "subjectId": self.subject_id,
            "raw": asdict(self.identity),
        }


@dataclass(frozen=True)
class Issued:
    """Terminal issuance outcome: an auto-post HTML document."""

    document: str
    relay_state: Optional[str] = None
    claims: Optional[ClaimSet] = field(default=None, compare=False)


@dataclass(frozen=True)
class Redirect:
    """Terminal issuance outcome: send the user to the interactive login."""

    target: str


IssuanceResult = Union[Issued, Redirect]
