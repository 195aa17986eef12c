"""Outbound command payloads understood by the live server."""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, NonNegativeInt, model_validator

from shared.models.envelope import MessageEnvelope

START_WORKOUT = "start_workout"
STOP_WORKOUT = "stop_workout"
GET_STATUS = "get_status"

STATUS = "status"
SUCCESS = "success"
ERROR = "error"

INBOUND_MESSAGE_TYPES: frozenset[str] = frozenset(
    {
        STATUS,
        "workout_stats",
        "workout_state",
        ERROR,
        SUCCESS,
        "workout_started",
        "workout_ended",
    }
)

# Replies the server sends for each outbound command.
COMMAND_REPLIES: dict[str, frozenset[str]] = {
    GET_STATUS: frozenset({STATUS}),
    START_WORKOUT: frozenset({SUCCESS, ERROR}),
    STOP_WORKOUT: frozenset({SUCCESS, ERROR}),
}


class WorkoutType(str, enum.Enum):
    just_row = "just_row"
    fixed_distance = "fixed_distance"
    fixed_time = "fixed_time"


class WorkoutParams(BaseModel):
    """Parameters of a ``start_workout`` command (distances in meters, times in seconds)."""

    workout_type: WorkoutType
    distance: Optional[NonNegativeInt] = None
    time: Optional[NonNegativeInt] = None
    split_distance: Optional[NonNegativeInt] = None
    split_time: Optional[NonNegativeInt] = None

    @model_validator(mode="after")
    def _check_target(self) -> "WorkoutParams":
        if self.workout_type is WorkoutType.fixed_distance and not self.distance:
            raise ValueError("fixed_distance workouts require a distance")
        if self.workout_type is WorkoutType.fixed_time and not self.time:
            raise ValueError("fixed_time workouts require a time")
        return self


def start_workout(params: WorkoutParams) -> MessageEnvelope:
    return MessageEnvelope(type=START_WORKOUT, data=params.model_dump(mode="json", exclude_none=True))


def stop_workout() -> MessageEnvelope:
    return MessageEnvelope(type=STOP_WORKOUT)


def get_status() -> MessageEnvelope:
    return MessageEnvelope(type=GET_STATUS)
