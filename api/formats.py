"""
api/formats.py -- Request body parsing for the extension endpoints.

read_map() turns a raw request body into a JSON object (dict). Anything
else -- empty body, invalid JSON, NaN or Infinity literals, non-UTF-8 bytes,
a JSON array or scalar -- raises BadInputError, which routes answer with
400 InvalidFormat.
"""

from __future__ import annotations

import json
from typing import Any


class BadInputError(Exception):
    """The request body could not be read as a JSON object."""


def _reject_constant(name: str) -> Any:
    # json.loads calls this for NaN, Infinity and -Infinity, which are not JSON
    raise BadInputError(f"Unable to parse request body as JSON: {name} is not a valid JSON value.")


def read_map(payload: bytes | str) -> dict[str, Any]:
    """Parse payload as a JSON object and return it.

    >>> read_map(b'{"password": "bar"}')
    {'password': 'bar'}
    """
    if isinstance(payload, bytes):
        try:
            payload = payload.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BadInputError(f"Request body is not valid UTF-8: {exc}") from exc
    try:
        value = json.loads(payload, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise BadInputError(f"Unable to parse request body as JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise BadInputError(f"Expected a JSON object, got {type(value).__name__}.")
    return value
