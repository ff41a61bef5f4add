"""Unit tests for the client auto-auth orchestrator and HTTP client."""

from unittest.mock import MagicMock

import pytest
import requests

from mock_idp.client.http_client import IdPClient
from mock_idp.client.orchestrator import (
    GENERIC_ERROR,
    INVALID_EMAIL_ERROR,
    NO_SUBJECT_ERROR,
    AutoAuthOrchestrator,
    OrchestratorState,
    PageContext,
    is_valid_email,
)


State = OrchestratorState


def make_response(status_code, text="", headers=None):
    response = requests.Response()
    response.status_code = status_code
    response._content = text.encode("utf-8")
    response.encoding = "utf-8"
    response.headers.update(headers or {})
    return response


@pytest.fixture
def mock_client():
    """IdPClient double: profile email and subject id both resolve."""
    client = MagicMock(spec=IdPClient)
    client.get_profile_identifier.return_value = "jane.doe@example.com"
    client.resolve_subject_id.return_value = "1001"
    client.submit_auth.return_value = make_response(200, "<html>auto-post</html>")
    client.url.side_effect = lambda path: f"http://idp.example.com{path}"
    return client


@pytest.fixture
def surface():
    surface = MagicMock()
    surface.prompt_for_email.return_value = None
    return surface


@pytest.fixture
def saml_page():
    return PageContext(saml_request="PHNhbWxwOkF1dGhuUmVxdWVzdC8+", relay_state="state-1")


class TestPageContext:
    """Tests for PageContext."""

    @pytest.mark.parametrize(
        "page, expected",
        [
            (PageContext(saml_request="abc"), True),
            (PageContext(audience="a", acs_url="b", request_id="c"), True),
            (PageContext(audience="a", acs_url="b"), False),
            (PageContext(), False),
        ],
    )
    def test_has_protocol_request(self, page, expected):
        assert page.has_protocol_request() is expected

    def test_payload_prefers_encoded_request(self):
        """Test the encoded request replaces the discrete parameters."""
        page = PageContext(saml_request="abc", acs_url="https://sp/acs", relay_state="rs")

        assert page.issuance_payload("a@b.com", "1001") == {
            "email": "a@b.com",
            "subjectId": "1001",
            "SAMLRequest": "abc",
            "relayState": "rs",
        }

    def test_payload_with_discrete_parameters(self):
        page = PageContext(audience="aud", acs_url="https://sp/acs", request_id="_r1")

        assert page.issuance_payload("a@b.com", "1001") == {
            "email": "a@b.com",
            "subjectId": "1001",
            "audience": "aud",
            "acsUrl": "https://sp/acs",
            "id": "_r1",
        }


class TestIsValidEmail:
    @pytest.mark.parametrize(
        "email, expected",
        [
            ("jane.doe@example.com", True),
            ("jane@localhost", False),
            ("jane doe@example.com", False),
            ("", False),
            (None, False),
        ],
    )
    def test_email_shape(self, email, expected):
        assert is_valid_email(email) is expected


class TestAutoAuthentication:
    """Tests for silent sign-in."""

    def test_silent_success(self, mock_client, surface, saml_page):
        """Test profile email, resolve and issue end in SUCCESS."""
        # Arrange
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        # Act
        final = orchestrator.run(saml_page)

        # Assert
        assert final == State.SUCCESS
        assert orchestrator.history == [
            State.IDLE, State.DECIDING, State.AUTO_AUTHENTICATING, State.SUCCESS
        ]
        mock_client.resolve_subject_id.assert_called_once_with("jane.doe@example.com")
        mock_client.submit_auth.assert_called_once_with({
            "email": "jane.doe@example.com",
            "subjectId": "1001",
            "SAMLRequest": saml_page.saml_request,
            "relayState": "state-1",
        })
        surface.replace_document.assert_called_once_with("<html>auto-post</html>")
        surface.prompt_for_email.assert_not_called()

    def test_configured_email_skips_profile_lookup(self, mock_client, surface, saml_page):
        """Test a configured email is used instead of the profile identifier."""
        orchestrator = AutoAuthOrchestrator(mock_client, surface, email="sam.lee@example.com")

        orchestrator.run(saml_page)

        mock_client.get_profile_identifier.assert_not_called()
        mock_client.resolve_subject_id.assert_called_once_with("sam.lee@example.com")

    def test_fallback_email_degrades_to_interactive(self, mock_client, surface, saml_page):
        """Test an unusable profile identifier falls back without an error."""
        # Arrange
        mock_client.get_profile_identifier.return_value = "default.example.com"
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        # Act
        final = orchestrator.run(saml_page)

        # Assert
        assert final == State.INTERACTIVE
        mock_client.resolve_subject_id.assert_not_called()
        surface.show_error.assert_not_called()
        surface.prompt_for_email.assert_called_once()

    def test_no_subject_id_degrades_to_interactive(self, mock_client, surface, saml_page):
        """Test a resolution miss falls back without an error."""
        mock_client.resolve_subject_id.return_value = None
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        final = orchestrator.run(saml_page)

        assert final == State.INTERACTIVE
        surface.show_error.assert_not_called()
        mock_client.submit_auth.assert_not_called()

    def test_without_protocol_request_goes_interactive(self, mock_client, surface):
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        final = orchestrator.run(PageContext(acs_url="https://sp/acs"))

        assert final == State.INTERACTIVE
        mock_client.get_profile_identifier.assert_not_called()

    def test_redirect_navigates_to_login(self, mock_client, surface, saml_page):
        """Test a 302 from issuance navigates to the login page."""
        # Arrange
        mock_client.submit_auth.return_value = make_response(
            302, headers={"Location": "/saml/login?id=_r1"}
        )
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        # Act
        final = orchestrator.run(saml_page)

        # Assert
        assert final == State.REDIRECT_TO_LOGIN
        surface.navigate.assert_called_once_with("http://idp.example.com/saml/login?id=_r1")
        surface.replace_document.assert_not_called()

    @pytest.mark.parametrize("status_code", [400, 403, 500])
    def test_error_status_fails_with_generic_message(self, mock_client, surface, saml_page, status_code):
        """Test any other issuance status ends in FAILED."""
        mock_client.submit_auth.return_value = make_response(status_code, '{"success": false}')
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        final = orchestrator.run(saml_page)

        assert final == State.FAILED
        surface.show_error.assert_called_once_with(GENERIC_ERROR)

    def test_network_error_fails(self, mock_client, surface, saml_page):
        """Test a transport error on submit ends in FAILED."""
        mock_client.submit_auth.side_effect = requests.ConnectionError("refused")
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        final = orchestrator.run(saml_page)

        assert final == State.FAILED
        surface.show_error.assert_called_once_with(GENERIC_ERROR)


class TestInteractive:
    """Tests for interactive email entry."""

    def test_interactive_success(self, mock_client, surface):
        """Test a valid entered email is resolved and submitted."""
        # Arrange
        surface.prompt_for_email.side_effect = ["  jane.doe@example.com  "]
        orchestrator = AutoAuthOrchestrator(mock_client, surface)
        page = PageContext(acs_url="https://sp/acs", relay_state="rs")

        # Act
        final = orchestrator.run(page)

        # Assert
        assert final == State.SUCCESS
        assert orchestrator.history == [
            State.IDLE, State.DECIDING, State.INTERACTIVE, State.SUBMITTING, State.SUCCESS
        ]
        mock_client.submit_auth.assert_called_once_with({
            "email": "jane.doe@example.com",
            "subjectId": "1001",
            "acsUrl": "https://sp/acs",
            "relayState": "rs",
        })

    def test_invalid_email_reprompts(self, mock_client, surface):
        """Test an invalid email shows an error and prompts again."""
        # Arrange
        surface.prompt_for_email.side_effect = ["not-an-email", "jane.doe@example.com"]
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        # Act
        final = orchestrator.run(PageContext())

        # Assert
        assert final == State.SUCCESS
        surface.show_error.assert_called_once_with(INVALID_EMAIL_ERROR)
        mock_client.resolve_subject_id.assert_called_once_with("jane.doe@example.com")

    def test_unknown_email_reprompts(self, mock_client, surface):
        """Test an email without a subject id shows an error and prompts again."""
        surface.prompt_for_email.side_effect = ["nobody@example.com", None]
        mock_client.resolve_subject_id.return_value = None
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        final = orchestrator.run(PageContext())

        assert final == State.INTERACTIVE
        surface.show_error.assert_called_once_with(NO_SUBJECT_ERROR)
        mock_client.submit_auth.assert_not_called()

    @pytest.mark.parametrize("entered", [None, "", "   "])
    def test_abandoned_prompt_stays_interactive(self, mock_client, surface, entered):
        surface.prompt_for_email.side_effect = [entered]
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        assert orchestrator.run(PageContext()) == State.INTERACTIVE


class TestStateMachineGuards:
    """Tests for the orchestrator's structural guarantees."""

    def test_runs_only_once(self, mock_client, surface, saml_page):
        """Test a terminal orchestrator cannot be run again."""
        orchestrator = AutoAuthOrchestrator(mock_client, surface)
        orchestrator.run(saml_page)

        with pytest.raises(RuntimeError, match="already ran"):
            orchestrator.run(saml_page)

    def test_single_request_in_flight(self, mock_client, surface, saml_page):
        """Test a second request cannot start while one is pending."""
        # Arrange
        orchestrator = AutoAuthOrchestrator(mock_client, surface)
        mock_client.get_profile_identifier.side_effect = (
            lambda: orchestrator._call(mock_client.resolve_subject_id, "x@example.com")
        )

        # Act & Assert
        with pytest.raises(RuntimeError, match="already in flight"):
            orchestrator.run(saml_page)

    def test_at_most_one_outcome(self, mock_client, surface, saml_page):
        """Test success delivers one document and nothing else."""
        orchestrator = AutoAuthOrchestrator(mock_client, surface)

        orchestrator.run(saml_page)

        assert surface.replace_document.call_count == 1
        surface.navigate.assert_not_called()
        surface.show_error.assert_not_called()


class TestIdPClient:
    """Tests for the requests-based IdP client."""

    def test_url_joins_base(self):
        client = IdPClient("http://localhost:5225/", session=MagicMock())

        assert client.url("/api/saml/auth") == "http://localhost:5225/api/saml/auth"
        assert client.url("/saml/login?id=1") == "http://localhost:5225/saml/login?id=1"

    def test_resolve_subject_id(self):
        """Test the subject id is read from a successful response."""
        # Arrange
        session = MagicMock()
        session.post.return_value = make_response(200, '{"success": true, "subjectId": "1001"}')
        client = IdPClient("http://localhost:5225", timeout=7, session=session)

        # Act
        subject_id = client.resolve_subject_id("jane.doe@example.com")

        # Assert
        assert subject_id == "1001"
        session.post.assert_called_once_with(
            "http://localhost:5225/api/saml/resolve",
            json={"email": "jane.doe@example.com"},
            timeout=7,
        )

    @pytest.mark.parametrize(
        "response",
        [
            make_response(404, '{"success": false, "subjectId": null}'),
            make_response(500, '{"success": false, "subjectId": null}'),
            make_response(200, '{"success": true, "subjectId": null}'),
            make_response(200, "not json"),
        ],
    )
    def test_resolve_subject_id_misses(self, response):
        session = MagicMock()
        session.post.return_value = response
        client = IdPClient("http://localhost:5225", session=session)

        assert client.resolve_subject_id("jane.doe@example.com") is None

    def test_resolve_network_error_returns_none(self):
        session = MagicMock()
        session.post.side_effect = requests.Timeout("slow")
        client = IdPClient("http://localhost:5225", session=session)

        assert client.resolve_subject_id("jane.doe@example.com") is None

    def test_profile_identifier(self):
        session = MagicMock()
        session.get.return_value = make_response(200, '{"profileIdentifier": "jane@example.com"}')
        client = IdPClient("http://localhost:5225", session=session)

        assert client.get_profile_identifier() == "jane@example.com"

    def test_submit_auth_does_not_follow_redirects(self):
        """Test issuance responses are returned as-is."""
        session = MagicMock()
        client = IdPClient("http://localhost:5225", session=session)

        client.submit_auth({"email": "a@b.com"})

        assert session.post.call_args.kwargs["allow_redirects"] is False
