"""Flask application for the mock Identity Provider."""

import logging
import signal
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from flask import Flask, current_app, jsonify, request

from .. import __version__
from ..config.schema import Config
from ..directory.resolver import IdentityResolver
from ..idp.issuance import IssuanceService
from ..logging_audit.formatters import PIIRedactingFormatter
from ..saml.certificate_manager import load_signing_bundle
from ..saml.signer import AssertionSigner

EXTENSION_KEY = "mock_idp"

logger = logging.getLogger("mock_idp.server")


@dataclass
class ServerServices:
    """Services shared by all request handlers.

    Built once by create_app(); read-only afterwards apart from the request
    counter reported by /health.
    """

    config: Config
    resolver: IdentityResolver
    signer: AssertionSigner
    issuance: IssuanceService
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    request_count: int = 0


def get_services() -> ServerServices:
    """Return the services of the application handling the current request."""
    return current_app.extensions[EXTENSION_KEY]


def setup_logging(config: Config) -> logging.Logger:
    """Attach the rotating server log file to the server logger.

    Console output comes from the root logger set up by configure_logging().

    Args:
        config: Application configuration

    Returns:
        Configured logger instance
    """
    server_logger = logging.getLogger("mock_idp.server")
    server_logger.setLevel(logging.DEBUG)

    for handler in list(server_logger.handlers):
        if isinstance(handler, RotatingFileHandler):
            server_logger.removeHandler(handler)
            handler.close()

    log_path = Path(config.server.log_path)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8",
        )
    except OSError as e:
        server_logger.warning(f"Cannot open server log {log_path}: {e}")
        return server_logger

    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        PIIRedactingFormatter(redact_pii=config.logging.redact_pii)
    )
    server_logger.addHandler(file_handler)

    return server_logger


def log_request() -> None:
    """Log all incoming requests."""
    services = get_services()
    services.request_count += 1

    logger.info(
        f"Request #{services.request_count}: {request.method} {request.path} "
        f"(Content-Length: {request.content_length or 0})"
    )


def health_check():
    """Health check endpoint.

    Returns JSON with server status, version, issuance policy, uptime,
    request count, and timestamp.
    """
    services = get_services()
    uptime_seconds = int(
        (datetime.now(timezone.utc) - services.started_at).total_seconds()
    )

    health_response = {
        "status": "healthy",
        "version": __version__,
        "policy": services.config.issuance.policy.value,
        "entity_id": services.config.signing.entity_id,
        "endpoints": sorted(
            rule.rule for rule in current_app.url_map.iter_rules()
            if rule.endpoint != "static"
        ),
        "uptime_seconds": uptime_seconds,
        "request_count": services.request_count,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    return jsonify(health_response), 200


def bad_request(error):
    """Handle 400 Bad Request errors with a JSON body."""
    return jsonify({"success": False, "error": "Bad Request", "detail": str(error)}), 400


def method_not_allowed(error):
    """Handle 405 errors with a JSON body."""
    return jsonify({"success": False, "error": "Method not allowed"}), 405


def internal_error(error):
    """Handle 500 Internal Server errors with a JSON body."""
    return jsonify({"success": False, "error": "Internal Server Error"}), 500


def create_app(
    config: Config,
    resolver: Optional[IdentityResolver] = None,
    signer: Optional[AssertionSigner] = None,
) -> Flask:
    """Create the Flask application with its services.

    Args:
        config: Application configuration
        resolver: Identity resolver (built from config.directory if omitted)
        signer: Assertion signer (built from config.signing if omitted)

    Returns:
        Configured Flask application

    Raises:
        CertificateLoadError: If the signing pair cannot be loaded

    Example:
        >>> app = create_app(Config(), resolver=fake_resolver, signer=test_signer)
        >>> client = app.test_client()
        >>> client.get("/health").status_code
        200
    """
    app = Flask(__name__)

    if resolver is None:
        resolver = IdentityResolver(config.directory)

    if signer is None:
        signer = AssertionSigner(
            load_signing_bundle(config.signing),
            signature_algorithm=config.signing.signature_algorithm,
            validity_minutes=config.signing.validity_minutes,
        )

    issuance = IssuanceService(
        policy=config.issuance.policy,
        signer=signer,
        resolver=resolver,
        entity_id=config.signing.entity_id,
        allowed_domains=config.issuance.allowed_domains,
        login_path=config.issuance.login_path,
    )

    app.extensions[EXTENSION_KEY] = ServerServices(
        config=config,
        resolver=resolver,
        signer=signer,
        issuance=issuance,
    )

    app.before_request(log_request)
    app.add_url_rule("/health", "health_check", health_check, methods=["GET"])
    app.register_error_handler(400, bad_request)
    app.register_error_handler(405, method_not_allowed)
    app.register_error_handler(500, internal_error)

    from .login_page import register_login_page
    from .profile_endpoint import register_profile_endpoint
    from .saml_endpoints import register_saml_endpoints

    register_saml_endpoints(app)
    register_profile_endpoint(app)
    register_login_page(app, config.issuance.login_path)

    logger.info(
        f"Mock IdP application created: policy={config.issuance.policy.value}, "
        f"entity_id={config.signing.entity_id}"
    )
    return app


def setup_graceful_shutdown() -> None:
    """Setup graceful shutdown handlers for SIGTERM and SIGINT.

    Signal handlers can only be registered in the main thread; elsewhere a
    warning is logged and the server continues.
    """
    def shutdown_handler(signum, frame):
        logger.info(f"Received shutdown signal ({signum}), stopping mock IdP")
        sys.exit(0)

    try:
        signal.signal(signal.SIGTERM, shutdown_handler)
        signal.signal(signal.SIGINT, shutdown_handler)
        logger.info("Graceful shutdown handlers registered successfully")
    except ValueError as e:
        logger.warning(
            f"Could not register signal handlers (not in main thread): {e}. "
            f"Graceful shutdown via signals will not be available."
        )


def run_server(
    config: Config,
    host: Optional[str] = None,
    port: Optional[int] = None,
    debug: bool = False,
) -> None:
    """Run the mock IdP server.

    Args:
        config: Application configuration
        host: Host address (default: config.server.host)
        port: Port number (default: config.server.port)
        debug: Enable Flask debug mode

    Raises:
        CertificateLoadError: If the signing pair cannot be loaded
    """
    host = host or config.server.host
    port = port or config.server.port

    setup_logging(config)
    app = create_app(config)
    setup_graceful_shutdown()

    logger.info(f"Starting mock IdP on http://{host}:{port}")
    logger.info(f"Health check available at: http://{host}:{port}/health")

    app.run(
        host=host,
        port=port,
        debug=debug,
        use_reloader=False,  # Avoid duplicate startup
    )
