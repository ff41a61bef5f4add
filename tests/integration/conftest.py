"""Integration test fixtures and configuration.

This module provides fixtures for integration tests, including a live IdP
server running in a background thread. The server is wired to a fake
directory client so no LDAP server is needed.
"""

import logging
import socket
import threading
import time
from typing import Generator

import pytest
import requests
from werkzeug.serving import make_server

from mock_idp.directory.resolver import IdentityResolver
from mock_idp.server.app import create_app


logger = logging.getLogger(__name__)


# =============================================================================
# Utility Functions
# =============================================================================


def find_free_port() -> int:
    """Find an available port on localhost.

    Returns:
        int: An available port number.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.listen(1)
        port = s.getsockname()[1]
    return port


def wait_for_server(url: str, timeout: float = 10.0, interval: float = 0.1) -> bool:
    """Wait for server to become available.

    Args:
        url: URL to check (e.g., health endpoint).
        timeout: Maximum time to wait in seconds.
        interval: Time between checks in seconds.

    Returns:
        bool: True if server became available, False if timeout.
    """
    start_time = time.time()
    while time.time() - start_time < timeout:
        try:
            response = requests.get(url, timeout=1)
            if response.status_code == 200:
                return True
        except requests.exceptions.RequestException:
            pass
        time.sleep(interval)
    return False


# =============================================================================
# Live Server Fixtures
# =============================================================================


@pytest.fixture
def idp_app(app_config, directory_config, fake_directory_client, signer):
    """IdP application backed by the fake directory client."""
    resolver = IdentityResolver(directory_config, client=fake_directory_client)
    return create_app(app_config, resolver=resolver, signer=signer)


@pytest.fixture
def live_server_url(idp_app) -> Generator[str, None, None]:
    """Run the IdP app on a free local port for the duration of a test.

    Yields:
        str: Base URL (e.g., "http://127.0.0.1:8080").
    """
    host = "127.0.0.1"
    port = find_free_port()
    server = make_server(host, port, idp_app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    base_url = f"http://{host}:{port}"
    if not wait_for_server(f"{base_url}/health"):
        server.shutdown()
        pytest.fail(f"IdP server failed to start at {base_url}")

    logger.info(f"IdP server started at {base_url}")

    yield base_url

    server.shutdown()
    thread.join(timeout=5)
    logger.info("IdP server stopped")
