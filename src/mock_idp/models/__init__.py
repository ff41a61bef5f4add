"""Models package.

This module provides the data models used by the issuance pipeline.
"""

from mock_idp.models.identity import (
    CanonicalIdentity,
    ClaimSet,
    DirectoryRecord,
    IssuanceResult,
    Issued,
    ProtocolParameters,
    Redirect,
)

__all__ = [
    "CanonicalIdentity",
    "ClaimSet",
    "DirectoryRecord",
    "IssuanceResult",
    "Issued",
    "ProtocolParameters",
    "Redirect",
]
