"""CLI commands for signing key management."""

from pathlib import Path

import click

from ..saml.certificate_manager import (
    DEFAULT_COMMON_NAME,
    DEFAULT_VALIDITY_DAYS,
    generate_self_signed,
    write_key_pair,
)
from ..utils.exceptions import CertificateLoadError


@click.group(name="keys")
def keys_group() -> None:
    """Signing certificate commands."""
    pass


@keys_group.command(name="generate")
@click.option(
    "--out-dir",
    type=click.Path(file_okay=False, path_type=Path),
    required=True,
    help="Directory to write idp_cert.pem and idp_key.pem",
)
@click.option(
    "--common-name",
    type=str,
    default=DEFAULT_COMMON_NAME,
    show_default=True,
    help="Certificate subject common name",
)
@click.option(
    "--days",
    type=click.IntRange(min=1),
    default=DEFAULT_VALIDITY_DAYS,
    show_default=True,
    help="Validity period in days",
)
def generate(out_dir: Path, common_name: str, days: int) -> None:
    """Generate a self-signed RSA-2048 signing certificate.

    Example:
        mock-idp keys generate --out-dir certs
    """
    bundle = generate_self_signed(common_name=common_name, validity_days=days)

    try:
        cert_path, key_path = write_key_pair(bundle, out_dir)
    except CertificateLoadError as e:
        raise click.ClickException(str(e))

    click.echo(click.style("✓", fg="green", bold=True) + " Signing key pair generated")
    click.echo(f"  Subject:     {bundle.info.subject}")
    click.echo(f"  Expires:     {bundle.info.not_after.strftime('%Y-%m-%d')}")
    click.echo(f"  Certificate: {cert_path}")
    click.echo(f"  Private key: {key_path}")
    click.echo("\nSet MOCK_IDP_CERT_PATH and MOCK_IDP_KEY_PATH to use them.")
