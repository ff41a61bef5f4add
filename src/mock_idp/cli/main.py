"""Main CLI entry point for the mock Identity Provider.

This module provides the main Click command group for the mock-idp CLI.
"""

from pathlib import Path
from typing import Optional

import click

from mock_idp import __version__
from mock_idp.cli.directory_commands import resolve
from mock_idp.cli.keys_commands import keys_group
from mock_idp.cli.login_commands import login
from mock_idp.cli.serve_commands import serve
from mock_idp.config import load_config
from mock_idp.logging_audit import configure_logging
from mock_idp.utils.exceptions import ConfigurationError


@click.group()
@click.version_option(version=__version__, prog_name="mock-idp")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to configuration file (default: ./config/config.json)",
)
@click.option("--verbose", is_flag=True, help="Enable verbose logging (DEBUG level)")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to log file (overrides config file)",
)
@click.option(
    "--redact-pii",
    is_flag=True,
    help="Redact PII (emails, subject ids, names) from logs",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: bool,
    log_file: Optional[Path],
    redact_pii: bool,
) -> None:
    """Mock SAML Identity Provider backed by an LDAP directory.

    Common usage:

        # Run the IdP server
        mock-idp serve --port 5225

        # Look up a directory entry by email
        mock-idp resolve jane.doe@example.com

        # Generate a signing certificate
        mock-idp keys generate --out-dir certs

        # Sign in against a running server
        mock-idp login --audience https://sp.example.com --acs-url https://sp.example.com/acs --request-id _r1

    Use --help with any command for more information.
    """
    ctx.ensure_object(dict)

    try:
        config_obj = load_config(config)
        ctx.obj["config"] = config_obj
    except ConfigurationError as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        ctx.exit(1)

    ctx.obj["verbose"] = verbose
    ctx.obj["redact_pii"] = redact_pii
    ctx.obj["log_file"] = log_file

    # CLI flags > config file > defaults
    log_level = "DEBUG" if verbose else config_obj.logging.level
    log_file_path = log_file if log_file else config_obj.logging.log_file
    redact_pii_setting = redact_pii if redact_pii else config_obj.logging.redact_pii

    configure_logging(
        level=log_level, log_file=log_file_path, redact_pii=redact_pii_setting
    )


cli.add_command(serve)
cli.add_command(resolve)
cli.add_command(keys_group)
cli.add_command(login)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command()
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
def validate(config_file: Path) -> None:
    """Validate a configuration file.

    Example:
        mock-idp config validate config/config.json
    """
    try:
        config_obj = load_config(config_file)
    except ConfigurationError as e:
        click.echo(click.style("✗", fg="red", bold=True) + " Configuration validation failed")
        click.echo(f"\n{e}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(click.style("✓", fg="green", bold=True) + " Configuration is valid")
    click.echo(f"\nConfiguration file: {config_file}")

    click.echo("\nDirectory:")
    click.echo(f"  URL:         {config_obj.directory.url}")
    click.echo(f"  Base DN:     {config_obj.directory.base_dn}")
    click.echo(f"  Bind DN:     {config_obj.directory.bind_dn}")
    click.echo(
        f"  Timeouts:    {config_obj.directory.connect_timeout_ms}ms connect, "
        f"{config_obj.directory.timeout_ms}ms operation"
    )

    click.echo("\nSigning:")
    click.echo(f"  Entity ID:   {config_obj.signing.entity_id}")
    click.echo(f"  Cert path:   {config_obj.signing.cert_path or 'Not configured (ephemeral)'}")
    click.echo(f"  Key path:    {config_obj.signing.key_path or 'Not configured (ephemeral)'}")
    click.echo(f"  Algorithm:   {config_obj.signing.signature_algorithm}")

    click.echo("\nIssuance:")
    click.echo(f"  Policy:      {config_obj.issuance.policy.value}")
    click.echo(f"  Domains:     {', '.join(config_obj.issuance.allowed_domains) or 'any'}")
    click.echo(f"  Login path:  {config_obj.issuance.login_path}")

    click.echo("\nLogging:")
    click.echo(f"  Level:       {config_obj.logging.level}")
    click.echo(f"  Log file:    {config_obj.logging.log_file}")
    click.echo(f"  Redact PII:  {config_obj.logging.redact_pii}")


cli.add_command(config)


@cli.command()
def version() -> None:
    """Display version information."""
    click.echo(f"mock-idp version {__version__}")


if __name__ == "__main__":
    cli()
