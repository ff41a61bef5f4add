"""LDAP directory client built on ldap3.

The client exposes the four primitive operations the identity resolver
needs (connect, bind, search, unbind). It holds no connection state between
calls: every lookup creates its own connection and releases it.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import ldap3
from ldap3.core.exceptions import LDAPException

from ..config.schema import DirectoryConfig
from ..utils.exceptions import LookupFailure

logger = logging.getLogger(__name__)

# Result codes that still carry usable entries
_SEARCH_OK_CODES = (0, 4)  # success, sizeLimitExceeded


class DirectoryClient(Protocol):
    """Operations a directory backend must provide to the resolver."""

    def connect(self) -> Any:
        ...

    def bind(self, connection: Any, dn: str, password: str) -> None:
        ...

    def search(
        self,
        connection: Any,
        base_dn: str,
        search_filter: str,
        attributes: List[str],
    ) -> List[Dict[str, Any]]:
        ...

    def unbind(self, connection: Any) -> None:
        ...


def _first_value(value: Any) -> Optional[str]:
    """Collapse an ldap3 attribute value to a single string."""
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


class LdapDirectoryClient:
    """Directory client backed by ldap3.

    Attributes:
        config: Directory configuration (URL, timeouts)

    Example:
        >>> client = LdapDirectoryClient(DirectoryConfig())
        >>> conn = client.connect()
        >>> try:
        ...     client.bind(conn, "cn=serviceuser,dc=glauth,dc=com", "")
        ...     entries = client.search(conn, "dc=glauth,dc=com", "(mail=a@b.c)", ["mail"])
        ... finally:
        ...     client.unbind(conn)
    """

    def __init__(self, config: DirectoryConfig) -> None:
        self.config = config

    def connect(self) -> ldap3.Connection:
        """Create a connection object. The socket is opened by bind().

        Returns:
            Unopened ldap3 Connection

        Raises:
            LookupFailure: If the directory URL cannot be used
        """
        try:
            server = ldap3.Server(
                self.config.url,
                connect_timeout=self.config.connect_timeout_ms / 1000.0,
                get_info=ldap3.NONE,
            )
            return ldap3.Connection(
                server,
                receive_timeout=max(1, self.config.timeout_ms // 1000),
                raise_exceptions=False,
            )
        except LDAPException as e:
            raise LookupFailure(
                f"Failed to create directory connection to {self.config.url}: {e}",
                operation="connect",
            ) from e

    def bind(self, connection: ldap3.Connection, dn: str, password: str) -> None:
        """Bind with the service identity.

        An empty password performs an unauthenticated bind.

        Raises:
            LookupFailure: If the directory rejects the bind
        """
        connection.user = dn
        connection.password = password
        connection.authentication = ldap3.SIMPLE if password else ldap3.ANONYMOUS

        if not connection.bind():
            raise LookupFailure(
                f"Directory bind rejected for {dn}: "
                f"{connection.result.get('description', 'unknown error')}",
                operation="bind",
            )
        logger.debug(f"Bound to directory as {dn}")

    def search(
        self,
        connection: ldap3.Connection,
        base_dn: str,
        search_filter: str,
        attributes: List[str],
    ) -> List[Dict[str, Any]]:
        """Run one SUBTREE search.

        Returns:
            List of entries, each a dict with "dn" and lower-cased attribute names

        Raises:
            LookupFailure: If the directory reports a search error
        """
        connection.search(
            search_base=base_dn,
            search_filter=search_filter,
            search_scope=ldap3.SUBTREE,
            attributes=attributes,
        )

        result_code = connection.result.get("result") if connection.result else None
        if result_code not in _SEARCH_OK_CODES:
            raise LookupFailure(
                f"Directory search failed for {search_filter}: "
                f"{connection.result.get('description', 'unknown error') if connection.result else 'no result'}",
                operation="search",
            )

        entries: List[Dict[str, Any]] = []
        for item in connection.response or []:
            if item.get("type") != "searchResEntry":
                continue
            entry: Dict[str, Any] = {"dn": item["dn"]}
            for name, value in item.get("attributes", {}).items():
                entry[name.lower()] = _first_value(value)
            entries.append(entry)

        logger.debug(f"Directory search {search_filter} returned {len(entries)} entries")
        return entries

    def unbind(self, connection: ldap3.Connection) -> None:
        """Release the connection. Never raises."""
        try:
            connection.unbind()
        except LDAPException as e:
            logger.warning(f"Directory unbind failed: {e}")
