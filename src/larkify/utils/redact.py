"""Redaction of request/response payloads before they are dumped.

:func:`redact` is applied to every debug dump written by the transport:

* Values under credential-like keys (``Authorization``, ``access_token``,
  ``app_secret`` ...) are masked, keeping at most the last four characters.
* Resource identifiers that merely end in ``_token`` (``file_token``,
  ``page_token``, ``folder_token``) are kept: they are needed to debug a
  failed upload or pagination and grant nothing on their own.
* Inline ``data:`` URIs embedded in markdown become ``<data_uri:N_bytes>``.
* Raw bytes (multipart file bodies) become ``<binary:N_bytes>``.
* The access token itself is scrubbed from every string in the tree.
"""

from __future__ import annotations

import base64
import binascii
import copy
import re
from typing import Any

_DATA_URI_RE = re.compile(
    r"data:[a-zA-Z0-9_.+-]+/[a-zA-Z0-9_.+-]+;base64,[A-Za-z0-9+/=]+"
)

_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "token",
    "secret",
    "password",
    "authorization",
    "cookie",
})

_RESOURCE_TOKEN_KEYS: frozenset[str] = frozenset({
    "file_token",
    "page_token",
    "folder_token",
    "obj_token",
    "parent_node",
})

_BEARER_RE = re.compile(r"(Bearer\s+)\S+")


def _mask_token(value: str, token: str | None) -> str:
    if token and token in value:
        suffix = token[-4:] if len(token) >= 8 else "****"
        value = value.replace(token, f"<redacted:...{suffix}>")
    return _BEARER_RE.sub(lambda m: f"{m.group(1)}<redacted>", value)


def _data_uri_size(uri: str) -> int:
    b64_part = uri.split(";base64,", 1)[-1]
    try:
        return len(base64.b64decode(b64_part, validate=True))
    except (binascii.Error, ValueError):
        return len(b64_part) * 3 // 4


def _redact_value(value: Any, token: str | None) -> Any:
    if isinstance(value, dict):
        return _redact_dict(value, token)
    if isinstance(value, (list, tuple)):
        return [_redact_value(item, token) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}_bytes>"
    if isinstance(value, str):
        value = _DATA_URI_RE.sub(
            lambda m: f"<data_uri:{_data_uri_size(m.group(0))}_bytes>", value
        )
        return _mask_token(value, token)
    return value


def _redact_dict(d: dict, token: str | None) -> dict:
    result: dict = {}
    for key, value in d.items():
        key_lower = key.lower() if isinstance(key, str) else ""
        if key_lower not in _RESOURCE_TOKEN_KEYS and any(
            pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS
        ):
            masked = _mask_token(value, token) if isinstance(value, str) else value
            # Unknown secrets are masked wholesale.
            result[key] = masked if masked != value else "<redacted>"
        else:
            result[key] = _redact_value(value, token)
    return result


def redact(payload: dict, token: str | None = None) -> dict:
    """Return a deep copy of *payload* with sensitive data removed.

    Parameters
    ----------
    payload:
        A request body, a set of headers or a parsed response.
    token:
        The access token in use.  Every occurrence is replaced.

    Returns
    -------
    dict
        A new dictionary; *payload* is never mutated.

    Examples
    --------
    >>> redact({"Authorization": "Bearer t-abc123"})
    {'Authorization': 'Bearer <redacted>'}
    >>> redact({"file_token": "boxcnXYZ"})
    {'file_token': 'boxcnXYZ'}
    """
    return _redact_dict(copy.deepcopy(payload), token)
