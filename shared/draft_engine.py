from enum import Enum
from typing import Optional, List, Sequence
from dataclasses import dataclass, field

from .errors import (
    AlreadyFull,
    DuplicateParticipant,
    NotStarted,
    DraftComplete,
    NotYourTurn,
    TitleUnavailable,
    UnknownTitle,
)


DEFAULT_MAP_POOL = ("Ascent", "Pearl", "Split", "Haven", "Bind", "Breeze", "Icebox")


class DraftPhase(str, Enum):
    WAITING = "waiting"
    BANNING = "banning"
    COMPLETE = "complete"


@dataclass
class BanResult:
    banned: str
    remaining: List[str]
    resolved: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.resolved is not None


@dataclass
class DraftSession:
    """
    Two-party alternating ban over a pool of map titles.

    Participants take turns removing one title each until a single title is
    left; that title is the resolved map. Every failing call leaves the
    session untouched.
    """
    pool: Sequence[str] = DEFAULT_MAP_POOL
    candidates: List[str] = None
    participants: List[str] = field(default_factory=list)
    turn_index: int = 0
    started: bool = False

    ALLOWED_ACTIONS = {
        DraftPhase.WAITING: ["join"],
        DraftPhase.BANNING: ["ban"],
        DraftPhase.COMPLETE: ["side_select"],
    }

    def __post_init__(self):
        self.pool = tuple(self.pool)
        if self.candidates is None:
            self.candidates = list(self.pool)
        else:
            self.candidates = list(self.candidates)
        self.participants = list(self.participants)

    @property
    def complete(self) -> bool:
        return self.started and len(self.candidates) == 1

    @property
    def resolved_title(self) -> Optional[str]:
        return self.candidates[0] if self.complete else None

    @property
    def phase(self) -> DraftPhase:
        if not self.started:
            return DraftPhase.WAITING
        if self.complete:
            return DraftPhase.COMPLETE
        return DraftPhase.BANNING

    @property
    def allowed_actions(self) -> List[str]:
        return self.ALLOWED_ACTIONS.get(self.phase, [])

    @property
    def current_participant(self) -> Optional[str]:
        if not self.started:
            return None
        return self.participants[self.turn_index]

    @property
    def banned(self) -> List[str]:
        return [t for t in self.pool if t not in self.candidates]

    def join(self, participant_id: str) -> bool:
        """Take a free slot. Returns True when this join started the draft."""
        if participant_id in self.participants:
            raise DuplicateParticipant(participant_id=participant_id)
        if len(self.participants) >= 2:
            raise AlreadyFull()

        self.participants.append(participant_id)
        if len(self.participants) == 2:
            self.started = True
            self.turn_index = 0
            return True
        return False

    def select_title(self, participant_id: str, title: str) -> BanResult:
        if not self.started:
            raise NotStarted()
        if self.complete:
            raise DraftComplete()
        if self.participants[self.turn_index] != participant_id:
            raise NotYourTurn()
        if title not in self.candidates:
            if title in self.pool:
                raise TitleUnavailable(title=title)
            raise UnknownTitle(title=title)

        self.candidates.remove(title)
        self.turn_index = 1 - self.turn_index

        return BanResult(
            banned=title,
            remaining=list(self.candidates),
            resolved=self.resolved_title,
        )

    def reset(self):
        self.candidates = list(self.pool)
        self.participants = []
        self.turn_index = 0
        self.started = False

    def to_dict(self) -> dict:
        return {
            'titles': list(self.candidates),
            'banned': self.banned,
            'participants': list(self.participants),
            'currentTurn': self.turn_index,
            'currentParticipant': self.current_participant,
            'gameStarted': self.started,
            'complete': self.complete,
            'phase': self.phase.value,
            'allowedActions': list(self.allowed_actions),
        }

    @classmethod
    def from_record(cls, record, pool: Sequence[str] = None) -> "DraftSession":
        """Rebuild a session from anything exposing the persisted draft columns."""
        participants = [p for p in (record.participant1, record.participant2) if p]
        return cls(
            pool=pool or record.pool or DEFAULT_MAP_POOL,
            candidates=record.titles,
            participants=participants,
            turn_index=record.current_turn or 0,
            started=bool(record.game_started),
        )

    def apply_to(self, record):
        """Write the session back onto a persisted record."""
        record.titles = list(self.candidates)
        record.participant1 = self.participants[0] if len(self.participants) > 0 else None
        record.participant2 = self.participants[1] if len(self.participants) > 1 else None
        record.current_turn = self.turn_index
        record.game_started = self.started
