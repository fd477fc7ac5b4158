import logging
from typing import Optional, Sequence, Tuple

from sqlalchemy.orm.exc import StaleDataError

from .models import db, Room, User, commit_session
from .bracket_engine import BracketEngine
from .directory import UserDirectory
from .name_generator import generate_room_code
from .notifier import EventNotifier
from shared.draft_engine import DraftSession, BanResult, DEFAULT_MAP_POOL
from shared.errors import (
    AlreadyInRoom,
    DraftNotComplete,
    DuplicateParticipant,
    Forbidden,
    InvalidChoice,
    NotYourTurn,
    RoomNotFound,
    SideAlreadyChosen,
    StaleState,
)
from shared.events import Event, EventType, room_event

logger = logging.getLogger(__name__)


class RoomCodeExhausted(RuntimeError):
    pass


class RoomCoordinator:
    """
    Manages rooms:
    - Bind a draft session to one bracket match
    - Admit the two teams of that match
    - Run the map ban and the side selection
    - Write the match result through to the bracket
    """

    def __init__(
        self,
        bracket_engine: BracketEngine,
        directory: UserDirectory,
        notifier: EventNotifier = None,
        map_pool: Sequence[str] = DEFAULT_MAP_POOL,
        side_choices: Sequence[str] = ('attacking', 'defending'),
        manager_roles: Sequence[str] = ('admin', 'moderator'),
        code_attempts: int = 10
    ):
        if len(map_pool) < 2:
            raise ValueError("Map pool needs at least two titles")
        self.brackets = bracket_engine
        self.directory = directory
        self.notifier = notifier or EventNotifier()
        self.map_pool = tuple(map_pool)
        self.side_choices = tuple(side_choices)
        self.manager_roles = tuple(manager_roles)
        self.code_attempts = code_attempts

    def get_room(self, room_code: str) -> Room:
        room = Room.query.filter_by(room_code=room_code).first()
        if not room:
            raise RoomNotFound(room_code=room_code)
        return room

    def can_manage(self, role: str) -> bool:
        return role in self.manager_roles

    # ==================== Lifecycle ====================

    def create_room(self, bracket_id: str, match_id: str, admin_username: str) -> Room:
        """Open a room for one bracket match. Nothing is written if the match does not exist."""
        self.brackets.find_match(bracket_id, match_id)

        room = Room(
            room_code=self._unique_room_code(),
            admin=admin_username,
            bracket_id=bracket_id,
            match_id=match_id,
            pool=list(self.map_pool),
            titles=list(self.map_pool),
            current_turn=0,
            game_started=False
        )
        db.session.add(room)
        commit_session()

        logger.info(f"Room {room.room_code} created by {admin_username} for {bracket_id}/{match_id}")
        self._publish(room_event(EventType.ROOM_CREATED, room.room_code,
                                 bracket_id=bracket_id, match_id=match_id))
        return room

    def join_room(self, room_code: str, user: User) -> Tuple[Room, bool]:
        """Seat the caller's team. Returns the room and whether this join started the draft."""
        room = self.get_room(room_code)
        team_name = self.directory.team_name_of(user)

        match = self.brackets.find_match(room.bracket_id, room.match_id)
        if team_name not in match.teams:
            raise Forbidden(f"Team {team_name} does not play in match {room.match_id}")

        draft = room.draft()
        try:
            started = draft.join(team_name)
        except DuplicateParticipant:
            raise AlreadyInRoom(participant_id=team_name)
        draft.apply_to(room)
        commit_session()

        logger.info(f"Team {team_name} joined room {room_code}")
        self._publish(room_event(EventType.ROOM_JOINED, room_code, team=team_name))
        if started:
            logger.info(f"Map selection started in room {room_code}: {draft.participants}")
            self._publish(room_event(EventType.DRAFT_STARTED, room_code,
                                     participants=draft.participants))
        return room, started

    def ban_title(self, room_code: str, user: User, title: str) -> Tuple[Room, BanResult]:
        room = self.get_room(room_code)
        team_name = self.directory.team_name_of(user)

        draft = room.draft()
        result = draft.select_title(team_name, title)
        draft.apply_to(room)
        if result.complete:
            room.resolved_title = result.resolved
        commit_session()

        logger.info(f"{team_name} banned {title} in room {room_code}, {len(result.remaining)} left")
        self._publish(room_event(EventType.TITLE_BANNED, room_code,
                                 team=team_name, title=title, remaining=result.remaining))
        if result.complete:
            logger.info(f"Room {room_code} resolved to map {result.resolved}")
            self._publish(room_event(EventType.DRAFT_COMPLETED, room_code, map=result.resolved))
        return room, result

    def select_side(self, room_code: str, user: User, choice: str) -> Room:
        """The second participant picks the side they start on once the map is known."""
        room = self.get_room(room_code)
        draft = room.draft()

        if not draft.complete:
            raise DraftNotComplete()

        team_name = self.directory.team_name_of(user)
        if team_name != draft.participants[1]:
            raise NotYourTurn("It is not your turn to choose")

        if choice not in self.side_choices:
            raise InvalidChoice(choices=self.side_choices)

        if room.side_choice is not None:
            raise SideAlreadyChosen(choice=room.side_choice)

        room.side_choice = choice
        commit_session()

        logger.info(f"{team_name} chose {choice} in room {room_code}")
        self._publish(room_event(EventType.SIDE_SELECTED, room_code, team=team_name, choice=choice))
        return room

    def record_room_winner(self, room_code: str, winner_team: str, caller_role: str):
        """
        Record the match winner on the room and on the bracket in one
        transaction. Either both writes land or neither does.
        """
        if not self.can_manage(caller_role):
            raise Forbidden("Only admins or moderators can update the winner")

        room = self.get_room(room_code)
        try:
            room.winner = winner_team
            bracket = self.brackets.record_winner(
                room.bracket_id, room.match_id, winner_team, commit=False
            )
            commit_session()
        except StaleDataError as e:
            # Autoflush inside the bracket lookup can hit a stale room row
            db.session.rollback()
            self.brackets.discard_pending()
            logger.warning(f"Rejected concurrent winner write for room {room_code}")
            raise StaleState() from e
        except Exception:
            db.session.rollback()
            self.brackets.discard_pending()
            logger.error(f"Failed to record winner {winner_team} for room {room_code}")
            raise

        self.brackets.publish_pending()
        logger.info(f"Room {room_code} winner {winner_team} written to {room.bracket_id}/{room.match_id}")
        self._publish(room_event(EventType.ROOM_WINNER, room_code, winner=winner_team))
        return room, bracket

    def resolve_winner_team(self, winner_username: Optional[str] = None,
                            winner_team: Optional[str] = None) -> str:
        if winner_team:
            return winner_team
        return self.directory.team_name_for_username(winner_username)

    # ==================== Internals ====================

    def _unique_room_code(self) -> str:
        for _ in range(self.code_attempts):
            code = generate_room_code()
            if not Room.query.filter_by(room_code=code).first():
                return code
        raise RoomCodeExhausted(f"No free room code after {self.code_attempts} attempts")

    def _publish(self, event: Event):
        self.notifier.publish(event)
