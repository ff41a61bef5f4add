"""Identity resolution and assertion issuance endpoints."""

import logging
import time
from typing import Any, Dict, Union

from flask import Blueprint, Flask, Response, jsonify, redirect, request
from werkzeug.wrappers import Response as BaseResponse

from ..logging_audit.audit import IDENTITY_RESOLVED, LOOKUP_FAILED, log_audit_event
from ..models.identity import Issued
from ..utils.exceptions import LookupFailure, MockIdPError, ValidationError, error_status
from .app import get_services

saml_bp = Blueprint("saml", __name__)

logger = logging.getLogger("mock_idp.server.saml")


def request_fields() -> Dict[str, Any]:
    """Return the request body as a dict, from JSON or form encoding."""
    if request.is_json:
        body = request.get_json(silent=True)
        return body if isinstance(body, dict) else {}
    return request.form.to_dict()


@saml_bp.route("/api/saml/resolve", methods=["POST"])
def handle_resolve() -> tuple[Response, int]:
    """Resolve an email to a subject identifier.

    Returns:
        Tuple of (JSON response, HTTP status code)
    """
    start_time = time.time()
    email = request_fields().get("email")

    if not email:
        return jsonify({"success": False, "subjectId": None, "error": "Email is required"}), 400

    resolver = get_services().resolver
    try:
        record = resolver.resolve_by_email(email)
    except ValidationError as e:
        return jsonify({"success": False, "subjectId": None, "error": str(e)}), 400
    except LookupFailure as e:
        logger.error(f"Directory lookup failed for resolve request: {e}")
        log_audit_event(LOOKUP_FAILED, {
            "status": "failure",
            "error_message": str(e),
            "operation": e.operation,
        })
        return jsonify({
            "success": False,
            "subjectId": None,
            "error": "Failed to fetch subject id",
        }), 500

    if record is None:
        logger.info("No directory entry for resolve request")
        return jsonify({"success": False, "subjectId": None, "error": "User not found"}), 404

    # Issuance looks the subject id up by alternatedsid
    subject_id = record.alternate_subject_id or record.employee_id or None
    log_audit_event(IDENTITY_RESOLVED, {
        "status": "success",
        "subject_id": subject_id,
        "duration": time.time() - start_time,
    })

    return jsonify({
        "success": True,
        "subjectId": subject_id,
        "identity": {
            "email": record.mail or email,
            "firstName": record.given_name,
            "lastName": record.surname,
            "employeeId": record.employee_id,
        },
    }), 200


@saml_bp.route("/api/saml/auth", methods=["POST"])
def handle_auth() -> Union[tuple[Response, int], BaseResponse]:
    """Issue a signed SAML Response or redirect to the login page.

    Returns:
        200 auto-post HTML, 302 redirect, or a JSON error
    """
    fields = request_fields()
    issuance = get_services().issuance

    try:
        result = issuance.issue(fields)
    except MockIdPError as e:
        status = error_status(e)
        if status >= 500:
            logger.error(f"Assertion issuance failed: {e}", exc_info=True)
        else:
            logger.warning(f"Assertion request rejected ({status}): {e}")
        return jsonify({"success": False, "error": str(e)}), status

    if isinstance(result, Issued):
        return Response(result.document, mimetype="text/html"), 200

    logger.info(f"Redirecting to interactive login: {result.target}")
    return redirect(result.target, code=302)


def register_saml_endpoints(app: Flask) -> None:
    """Register the resolve and auth endpoints with the Flask app."""
    if saml_bp.name not in app.blueprints:
        app.register_blueprint(saml_bp)
        logger.info("Registered SAML endpoints: /api/saml/resolve, /api/saml/auth")
