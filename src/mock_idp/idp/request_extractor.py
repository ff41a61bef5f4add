"""Protocol parameter extraction from an inbound AuthnRequest.

The encoded request is not parsed as XML and its signature is not checked.
Audience, ACS URL and request id are scraped with regular expressions; any
field the scrape does not find keeps the value passed as a discrete
parameter.
"""

import base64
import binascii
import logging
import re
import zlib
from typing import Any, Mapping, Optional

from ..models.identity import ProtocolParameters

logger = logging.getLogger(__name__)

AUDIENCE_PATTERN = re.compile(r"<saml:Audience>(.*?)</saml:Audience>", re.DOTALL)
DESTINATION_PATTERN = re.compile(r'AssertionConsumerServiceURL="([^"]*)"')
REQUEST_ID_PATTERN = re.compile(r'ID="([^"]*)"')

# Request field names accepted from JSON and form bodies
FIELD_AUDIENCE = "audience"
FIELD_ACS_URL = "acsUrl"
FIELD_REQUEST_ID = "id"
FIELD_RELAY_STATE = "relayState"
FIELD_SAML_REQUEST = "SAMLRequest"


def decode_saml_request(encoded: str) -> Optional[str]:
    """Decode a base64 SAMLRequest into text.

    Payloads from the HTTP-Redirect binding are raw-deflated before
    encoding; those are inflated too.

    Returns:
        Decoded XML text, or None if the payload cannot be decoded
    """
    try:
        raw = base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError) as e:
        logger.debug(f"SAMLRequest is not valid base64: {e}")
        return None

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        pass

    try:
        return zlib.decompress(raw, -15).decode("utf-8")
    except (zlib.error, UnicodeDecodeError) as e:
        logger.debug(f"SAMLRequest could not be decoded: {e}")
        return None


def _scrape(pattern: re.Pattern, text: str) -> Optional[str]:
    match = pattern.search(text)
    if match:
        return match.group(1)
    return None


def _discrete(params: Mapping[str, Any], name: str) -> Optional[str]:
    value = params.get(name)
    if value is None or value == "":
        return None
    return str(value)


def extract_protocol_parameters(params: Mapping[str, Any]) -> ProtocolParameters:
    """Normalize SP protocol parameters from a request body.

    Args:
        params: Request fields (audience, acsUrl, id, relayState, SAMLRequest)

    Returns:
        ProtocolParameters where each field is the scraped value if found,
        otherwise the discrete value

    Example:
        >>> encoded = base64.b64encode(b'<x AssertionConsumerServiceURL="https://sp/acs"/>')
        >>> p = extract_protocol_parameters({"id": "abc", "SAMLRequest": encoded.decode()})
        >>> (p.destination_url, p.request_id)
        ('https://sp/acs', 'abc')
    """
    result = ProtocolParameters(
        audience=_discrete(params, FIELD_AUDIENCE),
        destination_url=_discrete(params, FIELD_ACS_URL),
        request_id=_discrete(params, FIELD_REQUEST_ID),
        relay_state=_discrete(params, FIELD_RELAY_STATE),
    )

    encoded = _discrete(params, FIELD_SAML_REQUEST)
    if not encoded:
        return result

    decoded = decode_saml_request(encoded)
    if decoded is None:
        logger.warning("Ignoring undecodable SAMLRequest; using discrete parameters")
        return result

    # A matched empty value still overrides the discrete one
    for field_name, pattern in (
        ("audience", AUDIENCE_PATTERN),
        ("destination_url", DESTINATION_PATTERN),
        ("request_id", REQUEST_ID_PATTERN),
    ):
        scraped = _scrape(pattern, decoded)
        if scraped is not None:
            setattr(result, field_name, scraped)

    logger.debug(
        f"Extracted protocol parameters: audience={result.audience}, "
        f"destination={result.destination_url}, request_id={result.request_id}"
    )
    return result
