"""HTTP-POST binding auto-submit form.

Renders the HTML document that posts the SAMLResponse (and RelayState) to
the SP's Assertion Consumer Service as soon as the browser loads it.
"""

import html
from typing import Iterable, Optional

from ..models.saml import FormField

FIELD_RELAY_STATE = "RelayState"
FIELD_SAML_RESPONSE = "SAMLResponse"


def _hidden_input(field: FormField) -> str:
    name = html.escape(field.name, quote=True)
    value = html.escape(field.value or "", quote=True)
    return f'      <input type="hidden" name="{name}" value="{value}"/>'


def render_auto_post_form(
    destination_url: Optional[str], fields: Iterable[FormField]
) -> str:
    """Render an auto-submitting POST form.

    Every value is HTML-escaped, so SP-controlled values such as RelayState
    cannot break out of the attribute.

    Args:
        destination_url: Form action (the ACS URL)
        fields: Hidden inputs in document order

    Returns:
        Complete HTML document

    Example:
        >>> page = render_auto_post_form(
        ...     "https://sp.example.com/acs",
        ...     [FormField("RelayState", "abc"), FormField("SAMLResponse", "PHNhbWw+")],
        ... )
        >>> 'name="SAMLResponse"' in page
        True
    """
    action = html.escape(destination_url or "", quote=True)
    inputs = "\n".join(_hidden_input(field) for field in fields)

    return f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8"/>
    <title>Signing in</title>
  </head>
  <body onload="document.forms[0].submit()">
    <noscript>
      <p>JavaScript is disabled. Click Continue to proceed.</p>
    </noscript>
    <form method="post" action="{action}">
{inputs}
      <noscript><input type="submit" value="Continue"/></noscript>
    </form>
  </body>
</html>
"""


def response_form_fields(relay_state: Optional[str], encoded_response: str) -> list:
    """Build the RelayState and SAMLResponse fields in form order."""
    return [
        FormField(FIELD_RELAY_STATE, relay_state),
        FormField(FIELD_SAML_RESPONSE, encoded_response),
    ]
