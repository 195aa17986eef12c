import json

import pytest
from pydantic import ValidationError

from shared.models.commands import (
    COMMAND_REPLIES,
    INBOUND_MESSAGE_TYPES,
    WorkoutParams,
    WorkoutType,
    get_status,
    start_workout,
    stop_workout,
)
from shared.models.envelope import MessageEnvelope
from shared.protocol.codec import DecodeFailure, decode_envelope, encode_envelope


def test_decode_inbound_envelope():
    envelope = decode_envelope('{"type": "workout_stats", "data": {"power": 210}, "timestamp": "2025-01-01T00:00:00Z"}')

    assert envelope.type == "workout_stats"
    assert envelope.data == {"power": 210}
    assert envelope.timestamp == "2025-01-01T00:00:00Z"


def test_decode_ignores_unknown_keys_and_accepts_bytes():
    envelope = decode_envelope(b'{"type": "success", "data": null, "extra": 1}')

    assert envelope.type == "success"
    assert envelope.data is None
    assert envelope.timestamp is None


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "{not json",
        '"status"',
        '{"data": {}}',
        '{"type": ""}',
        '{"type": 42}',
        '{"type": "status", "timestamp": 17}',
        b"\xc3\x28",
    ],
)
def test_decode_rejects_non_envelopes(raw):
    with pytest.raises(DecodeFailure):
        decode_envelope(raw)


def test_encode_omits_missing_fields():
    assert json.loads(encode_envelope(stop_workout())) == {"type": "stop_workout"}
    assert json.loads(encode_envelope(get_status())) == {"type": "get_status"}


def test_encode_mapping_and_opaque_data():
    frame = encode_envelope({"type": "custom", "data": {"items": (1, 2)}, "timestamp": "t1"})

    assert json.loads(frame) == {"type": "custom", "data": {"items": [1, 2]}, "timestamp": "t1"}


def test_encode_rejects_mapping_without_type():
    with pytest.raises(ValidationError):
        encode_envelope({"data": {}})


def test_envelope_is_immutable():
    envelope = MessageEnvelope(type="status")

    with pytest.raises(ValidationError):
        envelope.type = "other"


def test_encode_keeps_nested_nulls_in_data():
    frame = encode_envelope({"type": "start_workout", "data": {"distance": None, "x": 1, "splits": [None, 500]}})

    assert json.loads(frame) == {"type": "start_workout", "data": {"distance": None, "x": 1, "splits": [None, 500]}}
    assert decode_envelope(frame).data == {"distance": None, "x": 1, "splits": [None, 500]}


def test_start_workout_payload():
    params = WorkoutParams(workout_type=WorkoutType.fixed_distance, distance=2000, split_distance=500)

    assert json.loads(encode_envelope(start_workout(params))) == {
        "type": "start_workout",
        "data": {"workout_type": "fixed_distance", "distance": 2000, "split_distance": 500},
    }


@pytest.mark.parametrize(
    "kwargs",
    [
        {"workout_type": "fixed_distance"},
        {"workout_type": "fixed_time", "distance": 500},
        {"workout_type": "interval"},
        {"workout_type": "just_row", "split_time": -1},
    ],
)
def test_invalid_workout_params(kwargs):
    with pytest.raises(ValidationError):
        WorkoutParams(**kwargs)


def test_every_command_expects_known_replies():
    commands = [get_status(), stop_workout(), start_workout(WorkoutParams(workout_type=WorkoutType.just_row))]

    for command in commands:
        assert COMMAND_REPLIES[command.type]
        assert COMMAND_REPLIES[command.type] <= INBOUND_MESSAGE_TYPES
