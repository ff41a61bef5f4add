"""Interactive login page.

The redirect target of the issuance endpoint. It renders a plain HTML form
that carries the SP parameters forward and posts to /api/saml/auth.
"""

import html
import logging

from flask import Flask, Response, request

logger = logging.getLogger("mock_idp.server.login")

CARRIED_FIELDS = ("audience", "acsUrl", "id", "relayState", "SAMLRequest")


def _hidden(name: str, value: str) -> str:
    return (
        f'        <input type="hidden" name="{html.escape(name, quote=True)}" '
        f'value="{html.escape(value, quote=True)}"/>'
    )


def _visible(name: str, label: str, value: str = "") -> str:
    escaped = html.escape(name, quote=True)
    return (
        f'        <label for="{escaped}">{html.escape(label)}</label>\n'
        f'        <input type="text" id="{escaped}" name="{escaped}" '
        f'value="{html.escape(value, quote=True)}" autocomplete="off"/>'
    )


def render_login_page(params: dict) -> str:
    """Render the login form for the given SP parameters.

    Without an ACS URL the form asks for ACS URL and audience as well.
    """
    inputs = []
    for name in CARRIED_FIELDS:
        value = params.get(name)
        if value:
            inputs.append(_hidden(name, value))

    if not params.get("acsUrl"):
        inputs.append(_visible("acsUrl", "ACS URL"))
        if not params.get("audience"):
            inputs.append(_visible("audience", "Audience"))

    inputs.append(_visible("email", "Email"))
    inputs.append(_visible("subjectId", "Subject ID"))
    fields = "\n".join(inputs)

    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8"/>
    <title>SAML Login</title>
  </head>
  <body>
    <form method="post" action="/api/saml/auth">
{fields}
        <button type="submit">Sign In</button>
    </form>
  </body>
</html>
"""


def handle_login_page() -> tuple[Response, int]:
    params = {name: request.args.get(name, "") for name in CARRIED_FIELDS}
    return Response(render_login_page(params), mimetype="text/html"), 200


def register_login_page(app: Flask, login_path: str) -> None:
    """Register the login page at the configured path."""
    app.add_url_rule(login_path, "login_page", handle_login_page, methods=["GET"])
    logger.info(f"Registered interactive login page: {login_path}")
