"""Entry point for running mock_idp as a module.

This allows the package to be executed as:
    python -m mock_idp
"""

from mock_idp.cli.main import cli

if __name__ == "__main__":
    cli()
