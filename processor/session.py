"""Anonymous ownership tracking through a client-held cookie.

The cookie holds a URL-encoded JSON array of event ids the visitor has
created. It is script-readable and carries no signature: it is a weak
convenience signal for "may edit", not an authentication secret.
"""
import json
import logging
from typing import Any, List, Optional
from urllib.parse import quote, unquote

logger = logging.getLogger(__name__)

COOKIE_NAME = 'sb_session'
MAX_AGE_SECONDS = 7 * 24 * 60 * 60

# Characters encodeURIComponent leaves alone
_SAFE_CHARS = "-_.!~*'()"


def encode_session_value(ids: List[str]) -> str:
    """Serialise ids as a URL-encoded JSON array."""
    return quote(json.dumps(list(ids), separators=(',', ':'), ensure_ascii=False),
                 safe=_SAFE_CHARS)


def decode_session_value(raw: Any) -> List[str]:
    """
    Decode a cookie value into a list of ids.

    Never raises: absent, malformed or non-array input yields an empty
    list. Non-string and empty entries are dropped.

    Args:
        raw: Raw cookie value

    Returns:
        List of event ids
    """
    if not raw or not isinstance(raw, str):
        return []

    try:
        parsed = json.loads(unquote(raw))
    except (ValueError, RecursionError) as e:
        logger.debug(f"Ignoring malformed session cookie: {e}")
        return []

    if not isinstance(parsed, list):
        logger.debug("Ignoring session cookie that is not a JSON array")
        return []

    return [item for item in parsed if isinstance(item, str) and item]


def parse_session_ids(cookie_header: Any) -> List[str]:
    """
    Extract the owned event ids from a raw Cookie request header.

    Args:
        cookie_header: Value of the Cookie header, may be None

    Returns:
        List of event ids, empty when the cookie is absent or unusable
    """
    if not cookie_header or not isinstance(cookie_header, str):
        return []

    prefix = f"{COOKIE_NAME}="
    for pair in cookie_header.split(';'):
        pair = pair.strip()
        if pair.startswith(prefix):
            return decode_session_value(pair[len(prefix):])

    return []


def build_set_cookie_header(ids: List[str], domain: Optional[str] = None) -> str:
    """
    Build the Set-Cookie header value carrying ids.

    The cookie is deliberately not HttpOnly so client scripts can read it.

    Args:
        ids: Owned event ids
        domain: Optional cookie domain for split API/site deployments

    Returns:
        Set-Cookie header value
    """
    header = (
        f"{COOKIE_NAME}={encode_session_value(ids)}; Path=/; "
        f"Max-Age={MAX_AGE_SECONDS}; Secure; SameSite=Strict"
    )
    if domain:
        header += f"; Domain={domain}"
    return header


def merge_ids(existing: Any, new_id: str) -> List[str]:
    """
    Append new_id to existing unless already present.

    Args:
        existing: Current ids; anything that is not a list counts as empty
        new_id: Id to add

    Returns:
        New list in first-insertion order
    """
    if not isinstance(existing, list):
        existing = []
    if new_id in existing:
        return list(existing)
    return [*existing, new_id]


def is_owned(session_ids: List[str], event_id: str) -> bool:
    """Ownership check: is event_id in the caller-supplied set."""
    return event_id in session_ids
