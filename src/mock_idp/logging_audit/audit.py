"""Audit trail for identity resolution and assertion issuance.

Each decision the IdP takes (issued, redirected, denied, resolved, failed
lookup) is written as one structured line on the audit logger.
"""

import time
import uuid
from typing import Any, Dict

from .logger import get_logger

logger = get_logger(__name__)

# Event types
ASSERTION_ISSUED = "ASSERTION_ISSUED"
ISSUANCE_REDIRECTED = "ISSUANCE_REDIRECTED"
ACCESS_DENIED = "ACCESS_DENIED"
IDENTITY_RESOLVED = "IDENTITY_RESOLVED"
LOOKUP_FAILED = "LOOKUP_FAILED"

# Events that are logged at WARNING regardless of status
_WARNING_EVENTS = {ACCESS_DENIED, LOOKUP_FAILED}


def log_audit_event(event_type: str, details: Dict[str, Any]) -> None:
    """Log an audit trail event.

    Creates a structured audit log entry with standard fields. Events with
    status "failure" are logged at ERROR, denials and failed lookups at
    WARNING, everything else at INFO.

    Args:
        event_type: Type of event (e.g., ASSERTION_ISSUED, ACCESS_DENIED)
        details: Dictionary with event details. Common fields include:
                - status: "success" or "failure"
                - policy: Issuance policy in effect
                - request_id: AuthnRequest ID being answered
                - audience: SP audience
                - subject_id: Subject identifier issued
                - duration: Operation duration in seconds
                - error_message: Error details (if any)
                - correlation_id: Optional correlation ID

    Example:
        >>> log_audit_event(ASSERTION_ISSUED, {
        ...     "status": "success",
        ...     "policy": "directory",
        ...     "request_id": "_abc",
        ...     "duration": 0.12
        ... })
    """
    details = dict(details)

    if "timestamp" not in details:
        details["timestamp"] = time.time()

    if "correlation_id" not in details:
        details["correlation_id"] = str(uuid.uuid4())

    message_parts = [f"AUDIT [{event_type}]"]

    field_order = [
        "status",
        "policy",
        "request_id",
        "audience",
        "subject_id",
        "duration",
        "error_message",
        "correlation_id",
    ]

    for field in field_order:
        if field in details:
            value = details[field]
            if field == "duration" and isinstance(value, (int, float)):
                message_parts.append(f"{field}={value:.2f}s")
            else:
                message_parts.append(f"{field}={value}")

    for key, value in details.items():
        if key not in field_order and key != "timestamp":
            message_parts.append(f"{key}={value}")

    audit_message = " | ".join(message_parts)

    status = details.get("status", "unknown")
    if status == "failure":
        logger.error(audit_message)
    elif event_type in _WARNING_EVENTS:
        logger.warning(audit_message)
    else:
        logger.info(audit_message)
