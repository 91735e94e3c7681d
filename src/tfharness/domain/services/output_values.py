"""Decoding of ``terraform output -json`` values."""

from __future__ import annotations

import json

from tfharness.domain.models.lifecycle import EmptyOutputError, OutputDecodeError


def decode_output_value(name: str, raw: str) -> str:
    """Decode the JSON document printed for a single output as a string.

    Emptiness is not checked here; see :func:`require_non_empty`.
    """
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise OutputDecodeError(name, raw, str(e)) from e

    if not isinstance(value, str):
        raise OutputDecodeError(
            name, raw, f"expected a JSON string, got {type(value).__name__}"
        )
    return value


def require_non_empty(name: str, value: str) -> str:
    if value == "":
        raise EmptyOutputError(name)
    return value
