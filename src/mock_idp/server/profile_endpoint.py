"""Device profile identifier endpoint.

Reads the managed-device profile of the current OS user with the
`profiles` command and reports the profileIdentifier that carries the
user's mail address. The auto-auth client uses it as the email for silent
sign-in.
"""

import getpass
import logging
import re
import subprocess
from typing import Any, Dict, List, Optional

from flask import Blueprint, Flask, Response, jsonify

from .app import get_services

profile_bp = Blueprint("profile", __name__)

logger = logging.getLogger("mock_idp.server.profile")

PROFILE_TIMEOUT_SECONDS = 5
PROFILE_LINE_MARKER = "profileIdentifier"
MAIL_IDENTIFIER_PATTERN = re.compile(r"attribute: profileIdentifier: ([^\n]*mail[^\n]*)")
MAIL_SUFFIX_PATTERN = re.compile(r"mail\.(.+)")


def profile_command(user: Optional[str] = None) -> List[str]:
    return ["profiles", "show", "-user", user or getpass.getuser()]


def extract_mail_identifier(profile_output: str) -> Optional[str]:
    """Extract the mail profile identifier from `profiles show` output.

    Example:
        >>> extract_mail_identifier("attribute: profileIdentifier: com.corp.mail.jane@corp.com")
        'jane@corp.com'
    """
    match = MAIL_IDENTIFIER_PATTERN.search(profile_output)
    if not match:
        return None

    identifier = match.group(1)
    suffix = MAIL_SUFFIX_PATTERN.search(identifier)
    return suffix.group(1) if suffix else identifier


def read_profile_identifier(default_domain: str) -> Dict[str, Any]:
    """Run the profiles command and extract the mail identifier.

    When the command is missing, fails or prints no profile identifiers, the
    identifier falls back to "default.<default_domain>".

    Returns:
        Dict with profileIdentifier, profileOutput and success
    """
    try:
        completed = subprocess.run(
            profile_command(),
            capture_output=True,
            text=True,
            timeout=PROFILE_TIMEOUT_SECONDS,
            check=True,
        )
        profile_output = "".join(
            line + "\n"
            for line in completed.stdout.splitlines()
            if PROFILE_LINE_MARKER in line
        )
        if not profile_output:
            raise LookupError("no profileIdentifier lines in profiles output")
    except (OSError, subprocess.SubprocessError, LookupError) as e:
        logger.info(f"profiles command not available, using fallback: {e}")
        return {
            "profileIdentifier": f"default.{default_domain}",
            "profileOutput": "",
            "success": True,
        }

    return {
        "profileIdentifier": extract_mail_identifier(profile_output),
        "profileOutput": profile_output,
        "success": True,
    }


@profile_bp.route("/api/profile-identifier", methods=["GET"])
def handle_profile_identifier() -> tuple[Response, int]:
    """Report the device profile identifier.

    Returns:
        Tuple of (JSON response, HTTP status code)
    """
    default_domain = get_services().config.server.default_domain
    try:
        result = read_profile_identifier(default_domain)
    except Exception as e:
        logger.error(f"Failed to get profile identifier: {e}", exc_info=True)
        return jsonify({
            "error": "Failed to get profile identifier",
            "profileIdentifier": None,
            "success": False,
        }), 500

    return jsonify(result), 200


def register_profile_endpoint(app: Flask) -> None:
    """Register the profile identifier endpoint with the Flask app."""
    if profile_bp.name not in app.blueprints:
        app.register_blueprint(profile_bp)
        logger.info("Registered profile identifier endpoint: /api/profile-identifier")
