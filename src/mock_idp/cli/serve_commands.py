"""CLI command for running the IdP server."""

import logging
from typing import Optional

import click

from ..config.schema import IssuancePolicy
from ..server.app import run_server
from ..utils.exceptions import CertificateLoadError

logger = logging.getLogger(__name__)


@click.command(name="serve")
@click.option("--host", type=str, help="Bind address (overrides config file)")
@click.option("--port", type=int, help="Server port (overrides config file)")
@click.option(
    "--policy",
    type=click.Choice([p.value for p in IssuancePolicy]),
    help="Issuance policy (overrides config file)",
)
@click.option("--debug", is_flag=True, help="Enable Flask debug mode")
@click.pass_context
def serve(
    ctx: click.Context,
    host: Optional[str],
    port: Optional[int],
    policy: Optional[str],
    debug: bool,
) -> None:
    """Start the mock IdP server.

    Examples:

        # Start with configured settings\n
        mock-idp serve

        # Accept any caller-supplied subject id\n
        mock-idp serve --policy permissive --port 8080
    """
    config = ctx.obj["config"]

    if port is not None and not 1 <= port <= 65535:
        raise click.ClickException(
            f"Invalid port {port}. Port must be between 1 and 65535."
        )

    if policy is not None:
        config = config.model_copy(
            update={
                "issuance": config.issuance.model_copy(
                    update={"policy": IssuancePolicy(policy)}
                )
            }
        )

    host = host or config.server.host
    port = port or config.server.port

    click.echo("=" * 50)
    click.echo("Mock Identity Provider")
    click.echo("=" * 50)
    click.echo(f"Host: {host}")
    click.echo(f"Port: {port}")
    click.echo(f"Policy: {config.issuance.policy.value}")
    click.echo(f"Entity ID: {config.signing.entity_id}")
    click.echo(f"Directory: {config.directory.url}")
    click.echo(f"Health Check: http://{host}:{port}/health")
    click.echo("=" * 50)
    click.echo("Starting server... (Press Ctrl+C to stop)")

    try:
        run_server(config, host=host, port=port, debug=debug)
    except CertificateLoadError as e:
        raise click.ClickException(str(e))
    except KeyboardInterrupt:
        click.echo("\n\nServer stopped by user.")
