"""Client auto-authentication orchestrator.

A finite-state machine run once per page load. It decides from the shape
of the inbound request whether to sign in silently (profile email, resolve,
issue) or to fall back to interactive email entry, and hands the outcome to
a BrowserSurface.

States::

    IDLE -> DECIDING -> AUTO_AUTHENTICATING -> SUCCESS | REDIRECT_TO_LOGIN | FAILED
                     -> INTERACTIVE -> SUBMITTING -> SUCCESS | REDIRECT_TO_LOGIN | FAILED

AUTO_AUTHENTICATING degrades to INTERACTIVE without showing an error when the
email is unavailable or resolution yields no subject id.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

import requests

from .http_client import IdPClient

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

GENERIC_ERROR = "Error in getting SAML response"
INVALID_EMAIL_ERROR = "Please enter a valid email address"
NO_SUBJECT_ERROR = "No subject id found for this email"


class OrchestratorState(str, Enum):
    IDLE = "idle"
    DECIDING = "deciding"
    AUTO_AUTHENTICATING = "auto_authenticating"
    INTERACTIVE = "interactive"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    REDIRECT_TO_LOGIN = "redirect_to_login"
    FAILED = "failed"


TERMINAL_STATES = {
    OrchestratorState.SUCCESS,
    OrchestratorState.REDIRECT_TO_LOGIN,
    OrchestratorState.FAILED,
}


class BrowserSurface(Protocol):
    """What the orchestrator needs from the page it runs in."""

    def replace_document(self, html: str) -> None:
        ...

    def navigate(self, url: str) -> None:
        ...

    def prompt_for_email(self) -> Optional[str]:
        """Return the entered email, or None when the user gives up."""
        ...

    def show_error(self, message: str) -> None:
        ...


@dataclass
class PageContext:
    """Protocol parameters present on the page load.

    Attributes:
        saml_request: Encoded AuthnRequest
        audience: SP audience
        acs_url: Assertion Consumer Service URL
        request_id: AuthnRequest ID
        relay_state: Opaque SP state
    """

    saml_request: Optional[str] = None
    audience: Optional[str] = None
    acs_url: Optional[str] = None
    request_id: Optional[str] = None
    relay_state: Optional[str] = None

    def has_protocol_request(self) -> bool:
        """True when an encoded request or the full discrete triple is present."""
        if self.saml_request:
            return True
        return bool(self.audience and self.acs_url and self.request_id)

    def issuance_payload(self, email: str, subject_id: str) -> Dict[str, Any]:
        """Build the issuance request body.

        Carries the encoded request when present, otherwise whatever
        discrete parameters the page has.
        """
        payload: Dict[str, Any] = {"email": email, "subjectId": subject_id}
        if self.saml_request:
            payload["SAMLRequest"] = self.saml_request
        else:
            for name, value in (
                ("audience", self.audience),
                ("acsUrl", self.acs_url),
                ("id", self.request_id),
            ):
                if value:
                    payload[name] = value
        if self.relay_state:
            payload["relayState"] = self.relay_state
        return payload


def is_valid_email(email: Optional[str]) -> bool:
    """Check an email is local@domain.tld shaped."""
    return bool(email) and EMAIL_PATTERN.match(email) is not None


class AutoAuthOrchestrator:
    """Drive one login attempt to a terminal outcome.

    Attributes:
        client: IdP HTTP client
        surface: Browser surface receiving documents, navigation and errors
        email: Configured email for silent sign-in (profile identifier if None)
        state: Current state
        history: Every state entered, in order

    Example:
        >>> orchestrator = AutoAuthOrchestrator(IdPClient("http://localhost:5225"), surface)
        >>> orchestrator.run(PageContext(saml_request=encoded))
        <OrchestratorState.SUCCESS: 'success'>
    """

    def __init__(
        self,
        client: IdPClient,
        surface: BrowserSurface,
        email: Optional[str] = None,
    ) -> None:
        self.client = client
        self.surface = surface
        self.email = email
        self.state = OrchestratorState.IDLE
        self.history: List[OrchestratorState] = [OrchestratorState.IDLE]
        self._pending = False

    def run(self, page: PageContext) -> OrchestratorState:
        """Run the state machine for one page load.

        Returns:
            The final state (terminal, or INTERACTIVE if the user gave up)
        """
        if self.state != OrchestratorState.IDLE:
            raise RuntimeError(f"Orchestrator already ran (state={self.state.value})")

        self._transition(OrchestratorState.DECIDING)

        if page.has_protocol_request():
            self._transition(OrchestratorState.AUTO_AUTHENTICATING)
            if self._auto_authenticate(page):
                return self.state

        self._transition(OrchestratorState.INTERACTIVE)
        self._interactive(page)
        return self.state

    def _auto_authenticate(self, page: PageContext) -> bool:
        """Attempt silent sign-in. Returns False to fall back to interactive."""
        email = self.email or self._call(self.client.get_profile_identifier)
        if not is_valid_email(email):
            logger.info("No usable email for silent sign-in; falling back to interactive")
            return False

        subject_id = self._call(self.client.resolve_subject_id, email)
        if not subject_id:
            logger.info("No subject id for silent sign-in; falling back to interactive")
            return False

        self._submit(page.issuance_payload(email, subject_id))
        return True

    def _interactive(self, page: PageContext) -> None:
        while True:
            email = self.surface.prompt_for_email()
            if email is None or not email.strip():
                logger.info("Interactive sign-in abandoned")
                return

            email = email.strip()
            if not is_valid_email(email):
                self.surface.show_error(INVALID_EMAIL_ERROR)
                continue

            subject_id = self._call(self.client.resolve_subject_id, email)
            if not subject_id:
                self.surface.show_error(NO_SUBJECT_ERROR)
                continue

            self._transition(OrchestratorState.SUBMITTING)
            self._submit(page.issuance_payload(email, subject_id))
            return

    def _submit(self, payload: Dict[str, Any]) -> None:
        try:
            response = self._call(self.client.submit_auth, payload)
        except requests.RequestException as e:
            logger.warning(f"Issuance request failed: {e}")
            self._fail()
            return

        if response.status_code == 200:
            self.surface.replace_document(response.text)
            self._transition(OrchestratorState.SUCCESS)
            return

        location = response.headers.get("Location")
        if response.is_redirect and location:
            self.surface.navigate(self.client.url(location))
            self._transition(OrchestratorState.REDIRECT_TO_LOGIN)
            return

        logger.warning(f"Issuance request returned {response.status_code}")
        self._fail()

    def _fail(self) -> None:
        self.surface.show_error(GENERIC_ERROR)
        self._transition(OrchestratorState.FAILED)

    def _call(self, func, *args):
        # Single pending-request slot
        if self._pending:
            raise RuntimeError("A request is already in flight for this login attempt")
        self._pending = True
        try:
            return func(*args)
        finally:
            self._pending = False

    def _transition(self, new_state: OrchestratorState) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(
                f"Cannot leave terminal state {self.state.value} for {new_state.value}"
            )
        logger.debug(f"Orchestrator: {self.state.value} -> {new_state.value}")
        self.state = new_state
        self.history.append(new_state)
