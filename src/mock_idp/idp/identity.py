"""Canonical identity derivation.

Turns an optional directory record plus the caller's email into the
CanonicalIdentity placed in the assertion. Directory values always win;
the email local part and the email digest are fallbacks only.
"""

import hashlib
import re
from typing import Optional, Tuple

from ..models.identity import CanonicalIdentity, DirectoryRecord

_LOCAL_PART_SEPARATORS = re.compile(r"[._-]")


def email_digest(email: str) -> str:
    """Return the SHA-256 hex digest of an email address.

    Used as the stable subject identifier when nothing better is known.

    Example:
        >>> len(email_digest("jane.doe@example.com"))
        64
    """
    return hashlib.sha256(email.encode("utf-8")).hexdigest()


def names_from_email(email: str) -> Tuple[str, str]:
    """Derive (first_name, last_name) from the local part of an email.

    The local part is split on every '.', '_' and '-', keeping empty
    segments. Two or more segments give first and last name from the first
    two; a single segment is used for both.

    Example:
        >>> names_from_email("jane.doe@example.com")
        ('Jane', 'Doe')
        >>> names_from_email("admin@example.com")
        ('Admin', 'Admin')
        >>> names_from_email("-jane@example.com")
        ('', 'Jane')
    """
    local_part = email.split("@", 1)[0]
    segments = _LOCAL_PART_SEPARATORS.split(local_part)

    if len(segments) >= 2:
        return segments[0].capitalize(), segments[1].capitalize()

    single = local_part.capitalize()
    return single, single


def derive_identity(
    record: Optional[DirectoryRecord],
    email: str,
    fallback_subject_id: Optional[str] = None,
) -> CanonicalIdentity:
    """Build the canonical identity for an assertion.

    Args:
        record: Directory match, or None when no lookup was made
        email: Email supplied by the caller
        fallback_subject_id: Caller-supplied subject id, used only when the
            directory record carries neither employee id nor uid

    Returns:
        CanonicalIdentity with a non-empty subject_id

    Example:
        >>> rec = DirectoryRecord(dn="cn=jd", uid="jdoe", mail="jane.doe@corp.com")
        >>> derive_identity(rec, "jd@corp.com", "alt-1").subject_id
        'jdoe'
    """
    first_fallback, last_fallback = names_from_email(email)

    if record is None:
        return CanonicalIdentity(
            subject_id=fallback_subject_id or email_digest(email),
            email=email,
            first_name=first_fallback,
            last_name=last_fallback,
        )

    return CanonicalIdentity(
        subject_id=(
            record.employee_id
            or record.uid
            or fallback_subject_id
            or email_digest(email)
        ),
        email=record.mail or email,
        first_name=record.given_name or first_fallback,
        last_name=record.surname or last_fallback,
    )
