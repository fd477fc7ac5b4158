from enum import Enum
from dataclasses import dataclass
from datetime import datetime
import json


class EventType(str, Enum):
    # Bracket lifecycle
    BRACKET_CREATED = "bracket.created"
    BRACKET_COMPLETED = "bracket.completed"
    MATCH_RESULT = "match.result"
    ROUND_STARTED = "round.started"

    # Room lifecycle
    ROOM_CREATED = "room.created"
    ROOM_JOINED = "room.joined"
    DRAFT_STARTED = "draft.started"
    TITLE_BANNED = "title.banned"
    DRAFT_COMPLETED = "draft.completed"
    SIDE_SELECTED = "side.selected"
    ROOM_WINNER = "room.winner"


@dataclass
class Event:
    type: EventType
    channel: str
    timestamp: str = None
    data: dict = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow().isoformat() + "Z"
        if self.data is None:
            self.data = {}

    def to_dict(self) -> dict:
        return {
            "type": self.type.value if isinstance(self.type, EventType) else self.type,
            "channel": self.channel,
            "timestamp": self.timestamp,
            "data": self.data
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict) -> "Event":
        return cls(
            type=EventType(data["type"]) if data["type"] in [e.value for e in EventType] else data["type"],
            channel=data["channel"],
            timestamp=data.get("timestamp"),
            data=data.get("data", {})
        )

    @classmethod
    def from_json(cls, json_str: str) -> "Event":
        return cls.from_dict(json.loads(json_str))


def bracket_channel(bracket_id: str) -> str:
    return f"bracket:{bracket_id}:events"


def room_channel(room_code: str) -> str:
    return f"room:{room_code}:events"


def bracket_created_event(bracket_id: str, matches_count: int) -> Event:
    return Event(
        type=EventType.BRACKET_CREATED,
        channel=bracket_channel(bracket_id),
        data={
            "bracket_id": bracket_id,
            "matches_count": matches_count
        }
    )


def match_result_event(bracket_id: str, match_id: str, winner: str, round_num: int) -> Event:
    return Event(
        type=EventType.MATCH_RESULT,
        channel=bracket_channel(bracket_id),
        data={
            "match_id": match_id,
            "winner": winner,
            "round": round_num
        }
    )


def round_started_event(bracket_id: str, round_num: int, matches_count: int) -> Event:
    return Event(
        type=EventType.ROUND_STARTED,
        channel=bracket_channel(bracket_id),
        data={
            "round": round_num,
            "matches_count": matches_count
        }
    )


def bracket_completed_event(bracket_id: str, champion: str) -> Event:
    return Event(
        type=EventType.BRACKET_COMPLETED,
        channel=bracket_channel(bracket_id),
        data={"champion": champion}
    )


def room_event(event_type: EventType, room_code: str, **data) -> Event:
    return Event(
        type=event_type,
        channel=room_channel(room_code),
        data=dict(room_code=room_code, **data)
    )
