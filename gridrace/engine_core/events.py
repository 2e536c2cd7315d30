"""
Animation Events - Write-only presentation log produced during resolution.

Events are synthesized inline by the executor as each effect commits.
Timestamps are milliseconds relative to the start of the register and
advance by the fixed per-effect durations below, so clients can pace
playback without knowing any rules.

The log is never read back by game logic.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(Enum):
    REGISTER_START = "register_start"
    PLAYER_CARD = "player_card"
    ROBOT_MOVE = "robot_move"
    ROBOT_ROTATE = "robot_rotate"
    ROBOT_PUSHED = "robot_pushed"
    ROBOT_DESTROYED = "robot_destroyed"
    ROBOT_RESPAWNED = "robot_respawned"
    CONVEYOR_MOVE = "conveyor_move"
    GEAR_ROTATE = "gear_rotate"
    LASER_FIRE = "laser_fire"
    LASER_HIT = "laser_hit"
    CHECKPOINT_REACHED = "checkpoint_reached"
    ENERGY_GAINED = "energy_gained"
    REGISTER_END = "register_end"


# Client pacing, milliseconds
ANIMATION_DURATIONS: dict[str, int] = {
    "card_display": 500,
    "robot_move_per_tile": 250,
    "robot_rotation": 200,
    "conveyor_move": 300,
    "gear_rotation": 200,
    "laser_fire": 400,
    "between_players": 200,
    "register_pause": 300,
}


@dataclass
class AnimationEvent:
    """One visual consequence of resolution."""
    type: EventType
    timestamp: int
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "timestamp": self.timestamp, **self.data}


@dataclass
class AnimationTimeline:
    """
    Event collector for one register run.

    Created fresh per register and passed explicitly through the
    executor; nothing here is shared between sessions.
    """
    events: list[AnimationEvent] = field(default_factory=list)
    current_time: int = 0

    def emit(self, event_type: EventType, **data: Any) -> AnimationEvent:
        event = AnimationEvent(type=event_type, timestamp=self.current_time, data=data)
        self.events.append(event)
        return event

    def advance(self, duration: str, times: int = 1) -> None:
        self.current_time += ANIMATION_DURATIONS[duration] * times

