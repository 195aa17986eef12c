"""JSON text codec for :class:`MessageEnvelope` frames."""

from __future__ import annotations

import json
from typing import Any, Mapping

from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from shared.models.envelope import MessageEnvelope


class DecodeFailure(ValueError):
    """Raised when a received frame is not a valid envelope."""


def encode_envelope(message: MessageEnvelope | Mapping[str, Any]) -> str:
    """Serialise an envelope (or envelope-shaped mapping) to JSON text.

    Unset envelope fields are omitted, so ``MessageEnvelope(type="stop_workout")``
    goes out as ``{"type": "stop_workout"}``. ``data`` is passed through as is,
    nested nulls included.
    """

    if not isinstance(message, MessageEnvelope):
        message = MessageEnvelope.model_validate(dict(message))
    payload = jsonable_encoder(message)
    for key in [key for key, value in payload.items() if value is None]:
        del payload[key]
    return json.dumps(payload)


def decode_envelope(raw: str | bytes) -> MessageEnvelope:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecodeFailure("Frame is not valid UTF-8") from exc
    try:
        obj = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise DecodeFailure(f"Frame is not valid JSON: {exc.msg}") from exc
    if not isinstance(obj, dict):
        raise DecodeFailure(f"Frame must be a JSON object, got {type(obj).__name__}")
    try:
        return MessageEnvelope.model_validate(obj)
    except ValidationError as exc:
        raise DecodeFailure(f"Frame is not an envelope: {exc.error_count()} validation error(s)") from exc
