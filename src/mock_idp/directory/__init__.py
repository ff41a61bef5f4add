"""Directory lookup module.

This module provides the LDAP client and the identity resolver.
"""

from mock_idp.directory.client import DirectoryClient, LdapDirectoryClient
from mock_idp.directory.resolver import (
    DEFAULT_ATTRIBUTES,
    IdentityResolver,
    build_filter,
    escape_filter_value,
)

__all__ = [
    "DirectoryClient",
    "LdapDirectoryClient",
    "IdentityResolver",
    "DEFAULT_ATTRIBUTES",
    "build_filter",
    "escape_filter_value",
]
