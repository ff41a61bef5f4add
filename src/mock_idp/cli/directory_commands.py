"""CLI command for directory lookups."""

import json
from dataclasses import asdict

import click

from ..directory.resolver import IdentityResolver
from ..utils.exceptions import LookupFailure, ValidationError


@click.command(name="resolve")
@click.argument("email")
@click.pass_context
def resolve(ctx: click.Context, email: str) -> None:
    """Look up a directory entry by email and print it as JSON.

    Exits with status 1 when there is no match.

    Example:
        mock-idp resolve jane.doe@example.com
    """
    resolver = IdentityResolver(ctx.obj["config"].directory)

    try:
        record = resolver.resolve_by_email(email)
    except ValidationError as e:
        raise click.BadParameter(str(e), param_hint="EMAIL")
    except LookupFailure as e:
        raise click.ClickException(f"Directory lookup failed: {e}")

    if record is None:
        click.echo(f"No directory entry for {email}", err=True)
        raise click.exceptions.Exit(1)

    click.echo(json.dumps(asdict(record), indent=2))
