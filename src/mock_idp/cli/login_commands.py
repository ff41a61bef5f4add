"""CLI command running the auto-auth orchestrator against a live server."""

import logging
from pathlib import Path
from typing import Optional

import click

from ..client.http_client import IdPClient
from ..client.orchestrator import AutoAuthOrchestrator, OrchestratorState, PageContext

logger = logging.getLogger(__name__)


class ConsoleSurface:
    """BrowserSurface backed by the terminal.

    Documents are written to a file (or stdout), navigation is printed and
    the email prompt uses click.prompt.
    """

    def __init__(self, output: Optional[Path] = None) -> None:
        self.output = output

    def replace_document(self, html: str) -> None:
        if self.output:
            self.output.write_text(html, encoding="utf-8")
            click.echo(f"Auto-post document written to {self.output}")
        else:
            click.echo(html)

    def navigate(self, url: str) -> None:
        click.echo(f"Redirected to interactive login: {url}")

    def prompt_for_email(self) -> Optional[str]:
        try:
            return click.prompt("Email", default="", show_default=False)
        except click.Abort:
            return None

    def show_error(self, message: str) -> None:
        click.echo(click.style(f"Error: {message}", fg="red"), err=True)


@click.command(name="login")
@click.option("--base-url", type=str, help="IdP base URL (overrides config file)")
@click.option("--email", type=str, help="Email for silent sign-in (overrides config file)")
@click.option("--saml-request", type=str, help="Base64 SAMLRequest from the SP")
@click.option("--audience", type=str, help="SP audience")
@click.option("--acs-url", type=str, help="SP Assertion Consumer Service URL")
@click.option("--request-id", type=str, help="AuthnRequest ID")
@click.option("--relay-state", type=str, help="RelayState passed through to the SP")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the auto-post document to FILE instead of stdout",
)
@click.pass_context
def login(
    ctx: click.Context,
    base_url: Optional[str],
    email: Optional[str],
    saml_request: Optional[str],
    audience: Optional[str],
    acs_url: Optional[str],
    request_id: Optional[str],
    relay_state: Optional[str],
    output: Optional[Path],
) -> None:
    """Sign in against a running IdP server.

    With a SAMLRequest or the full audience/ACS URL/request id triple a
    silent sign-in is attempted first; otherwise the email is prompted for.

    Example:
        mock-idp login --audience https://sp.example.com \\
            --acs-url https://sp.example.com/acs --request-id _r1
    """
    client_config = ctx.obj["config"].client
    client = IdPClient(base_url or client_config.base_url, timeout=client_config.timeout)
    orchestrator = AutoAuthOrchestrator(
        client,
        ConsoleSurface(output),
        email=email or client_config.email,
    )

    page = PageContext(
        saml_request=saml_request,
        audience=audience,
        acs_url=acs_url,
        request_id=request_id,
        relay_state=relay_state,
    )

    try:
        final_state = orchestrator.run(page)
    finally:
        client.close()

    logger.info(
        "Login finished: " + " -> ".join(state.value for state in orchestrator.history)
    )

    if final_state != OrchestratorState.SUCCESS:
        click.echo(f"Login did not complete (state: {final_state.value})", err=True)
        raise click.exceptions.Exit(1)
