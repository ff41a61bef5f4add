"""Identity resolution against the LDAP directory.

The resolver turns one untrusted key (subject id, employee id or email) into
at most one DirectoryRecord. Keys are escaped before they are placed in the
search filter, so a caller cannot change the filter's structure.
"""

import logging
from typing import Any, Dict, List, Optional

from ldap3.core.exceptions import LDAPException
from ldap3.utils.conv import escape_filter_chars

from ..config.schema import DirectoryConfig
from ..models.identity import DirectoryRecord
from ..utils.exceptions import LookupFailure, ValidationError
from .client import DirectoryClient, LdapDirectoryClient

logger = logging.getLogger(__name__)

# Directory attribute names
ATTR_COMMON_NAME = "cn"
ATTR_MAIL = "mail"
ATTR_UID = "uid"
ATTR_GIVEN_NAME = "givenName"
ATTR_SURNAME = "sn"
ATTR_DISPLAY_NAME = "displayName"
ATTR_EMPLOYEE_ID = "employeeid"
ATTR_ALTERNATE_SUBJECT_ID = "alternatedsid"

DEFAULT_ATTRIBUTES = [
    ATTR_COMMON_NAME,
    ATTR_MAIL,
    ATTR_UID,
    ATTR_GIVEN_NAME,
    ATTR_SURNAME,
    ATTR_DISPLAY_NAME,
    ATTR_EMPLOYEE_ID,
    ATTR_ALTERNATE_SUBJECT_ID,
]


def escape_filter_value(value: str) -> str:
    """Escape a value for interpolation into an LDAP search filter.

    NUL, '(', ')', '*' and '\\' become \\00, \\28, \\29, \\2a and \\5c.
    All other characters pass through unchanged.

    Example:
        >>> escape_filter_value("*)(uid=*")
        '\\\\2a\\\\29\\\\28uid=\\\\2a'
    """
    return escape_filter_chars(value)


def build_filter(attribute: str, value: str) -> str:
    """Build an equality filter for one attribute."""
    return f"({attribute}={escape_filter_value(value)})"


def _to_record(entry: Dict[str, Any]) -> DirectoryRecord:
    return DirectoryRecord(
        dn=entry["dn"],
        cn=entry.get(ATTR_COMMON_NAME.lower()),
        mail=entry.get(ATTR_MAIL.lower()),
        uid=entry.get(ATTR_UID.lower()),
        given_name=entry.get(ATTR_GIVEN_NAME.lower()),
        surname=entry.get(ATTR_SURNAME.lower()),
        display_name=entry.get(ATTR_DISPLAY_NAME.lower()),
        employee_id=entry.get(ATTR_EMPLOYEE_ID.lower()),
        alternate_subject_id=entry.get(ATTR_ALTERNATE_SUBJECT_ID.lower()),
    )


class IdentityResolver:
    """Look up identities in the directory.

    Stateless apart from its configuration: one instance is built at start-up
    and shared by all request handlers. Each lookup opens and releases its
    own connection.

    Attributes:
        config: Directory configuration
        client: Directory client performing the wire operations

    Example:
        >>> resolver = IdentityResolver(DirectoryConfig())
        >>> record = resolver.resolve_by_email("jane.doe@example.com")
        >>> record.employee_id if record else None
    """

    def __init__(
        self,
        config: DirectoryConfig,
        client: Optional[DirectoryClient] = None,
    ) -> None:
        self.config = config
        self.client = client or LdapDirectoryClient(config)

    def resolve_by_subject_id(
        self, subject_id: str, attributes: Optional[List[str]] = None
    ) -> Optional[DirectoryRecord]:
        """Find the entry whose alternate subject id equals subject_id.

        Raises:
            ValidationError: If subject_id is empty or attributes is invalid
            LookupFailure: If the directory cannot be queried
        """
        if not subject_id:
            raise ValidationError("Subject id is required")
        return self._search(ATTR_ALTERNATE_SUBJECT_ID, subject_id, attributes)

    def resolve_by_employee_id(
        self, employee_id: str, attributes: Optional[List[str]] = None
    ) -> Optional[DirectoryRecord]:
        """Find the entry whose employee id equals employee_id.

        Raises:
            ValidationError: If employee_id is empty, not a string, or attributes is invalid
            LookupFailure: If the directory cannot be queried
        """
        if not employee_id or not isinstance(employee_id, str):
            raise ValidationError("Employee ID is required and must be a string")
        return self._search(ATTR_EMPLOYEE_ID, employee_id, attributes)

    def resolve_by_email(
        self, email: str, attributes: Optional[List[str]] = None
    ) -> Optional[DirectoryRecord]:
        """Find the entry whose mail attribute equals email.

        Raises:
            ValidationError: If email is empty, not a string, or attributes is invalid
            LookupFailure: If the directory cannot be queried
        """
        if not email or not isinstance(email, str):
            raise ValidationError("Email is required and must be a string")
        return self._search(ATTR_MAIL, email, attributes)

    def _search(
        self, attribute: str, key: str, attributes: Optional[List[str]]
    ) -> Optional[DirectoryRecord]:
        if attributes is None:
            attributes = list(DEFAULT_ATTRIBUTES)
        if not isinstance(attributes, list) or not attributes:
            raise ValidationError(
                "Attributes parameter is required and must be a non-empty list."
            )

        search_filter = build_filter(attribute, key)

        connection = self.client.connect()
        try:
            self.client.bind(connection, self.config.bind_dn, self.config.bind_password)
            entries = self.client.search(
                connection, self.config.base_dn, search_filter, attributes
            )
        except LookupFailure:
            raise
        except (LDAPException, OSError) as e:
            raise LookupFailure(
                f"Directory lookup on {attribute} failed: {e}",
                operation="search",
            ) from e
        finally:
            self.client.unbind(connection)

        if not entries:
            logger.debug(f"No directory entry for {search_filter}")
            return None

        if len(entries) > 1:
            # Only the first match is used
            logger.debug(
                f"Directory returned {len(entries)} entries for {search_filter}; using first"
            )

        record = _to_record(entries[0])
        logger.info(f"Resolved directory entry {record.dn} via {attribute}")
        return record
