"""HTTP client for the mock IdP endpoints.

Wraps one requests.Session used by the auto-auth orchestrator to call the
profile identifier, resolution and issuance endpoints. Requests are never
retried automatically.
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

PROFILE_IDENTIFIER_PATH = "/api/profile-identifier"
RESOLVE_PATH = "/api/saml/resolve"
AUTH_PATH = "/api/saml/auth"


def create_session() -> requests.Session:
    """Create a session without automatic retries."""
    adapter = HTTPAdapter(max_retries=0)
    session = requests.Session()
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class IdPClient:
    """Client for a running mock IdP server.

    Attributes:
        base_url: Base URL of the IdP server
        timeout: Request timeout in seconds
        session: HTTP session

    Example:
        >>> client = IdPClient("http://localhost:5225")
        >>> client.resolve_subject_id("jane.doe@example.com")
        '1001'
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = session or create_session()

    def url(self, path: str) -> str:
        """Resolve a path or Location header against the base URL."""
        return urljoin(self.base_url, path)

    def get_profile_identifier(self) -> Optional[str]:
        """Fetch the device profile identifier.

        Returns:
            The identifier, or None on any failure
        """
        try:
            response = self.session.get(self.url(PROFILE_IDENTIFIER_PATH), timeout=self.timeout)
            if response.status_code != 200:
                logger.debug(f"Profile identifier request returned {response.status_code}")
                return None
            return response.json().get("profileIdentifier")
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"Profile identifier request failed: {e}")
            return None

    def resolve_subject_id(self, email: str) -> Optional[str]:
        """Resolve an email to a subject id through the resolution endpoint.

        Returns:
            Subject id, or None when there is no match or the call fails
        """
        try:
            response = self.session.post(
                self.url(RESOLVE_PATH), json={"email": email}, timeout=self.timeout
            )
            if response.status_code != 200:
                logger.debug(f"Resolve request returned {response.status_code}")
                return None
            body = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.debug(f"Resolve request failed: {e}")
            return None

        if not body.get("success"):
            return None
        return body.get("subjectId") or None

    def submit_auth(self, payload: Dict[str, Any]) -> requests.Response:
        """Submit an issuance request without following redirects.

        Raises:
            requests.RequestException: On network failure
        """
        return self.session.post(
            self.url(AUTH_PATH),
            json=payload,
            timeout=self.timeout,
            allow_redirects=False,
        )

    def close(self) -> None:
        self.session.close()
