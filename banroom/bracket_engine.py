import logging
import threading
from datetime import datetime
from typing import List, Optional, Sequence

from .models import db, Bracket, BracketMatch, commit_session
from .name_generator import generate_bracket_id, generate_match_id, parse_bracket_sequence
from .notifier import EventNotifier
from shared.errors import (
    BracketNotFound,
    MatchNotFound,
    InvalidWinner,
    InvalidPairings,
    MatchAlreadyDecided,
    RoundMismatch,
)
from shared.events import (
    Event,
    bracket_created_event,
    match_result_event,
    round_started_event,
    bracket_completed_event,
)

logger = logging.getLogger(__name__)


class BracketEngine:
    """
    Single elimination bracket progression.

    Round 1 is given explicitly at initialization. Every later round is a
    pure function of the winners of the previous one: consecutive winners
    are paired in original match order and an odd winner out gets a bye.

    Byes are decided when they are created: the lone team is recorded as the
    winner straight away, so no admin action is needed to move it along.
    """

    def __init__(self, notifier: EventNotifier = None):
        self.notifier = notifier or EventNotifier()
        # One engine serves every request thread
        self._local = threading.local()

    @property
    def pending_events(self) -> List[Event]:
        if not hasattr(self._local, "events"):
            self._local.events = []
        return self._local.events

    # ==================== Queries ====================

    def get_bracket(self, bracket_id: str) -> Bracket:
        bracket = Bracket.query.filter_by(bracket_id=bracket_id).first()
        if not bracket:
            raise BracketNotFound(bracket_id=bracket_id)
        return bracket

    def find_match(self, bracket_id: str, match_id: str) -> BracketMatch:
        bracket = self.get_bracket(bracket_id)
        match = bracket.find_match(match_id)
        if not match:
            raise MatchNotFound(match_id=match_id)
        return match

    def list_brackets(self, limit: int = 50, offset: int = 0) -> List[Bracket]:
        query = Bracket.query.order_by(Bracket.created_at.desc(), Bracket.id.desc())
        return query.offset(offset).limit(limit).all()

    # ==================== Mutations ====================

    def initialize(
        self,
        pairings: Sequence[Sequence[Optional[str]]],
        created_by: str = None,
        commit: bool = True
    ) -> Bracket:
        """Create a bracket whose first round is exactly ``pairings``."""
        pairs = self._validate_pairings(pairings)

        bracket = Bracket(
            bracket_id=self._next_bracket_id(),
            created_by=created_by
        )
        for position, (team1, team2) in enumerate(pairs, start=1):
            bracket.matches.append(self._new_match(1, position, team1, team2))

        db.session.add(bracket)
        self.pending_events.append(bracket_created_event(bracket.bracket_id, len(pairs)))
        self._advance(bracket, 1)

        if commit:
            self.commit()

        logger.info(
            f"Initialized bracket {bracket.bracket_id} with {len(pairs)} matches "
            f"(created by {created_by})"
        )
        return bracket

    def record_winner(
        self,
        bracket_id: str,
        match_id: str,
        winner: str,
        round_num: Optional[int] = None,
        commit: bool = True
    ) -> Bracket:
        """
        Record ``winner`` for a match and create the next round if this
        decided the last open match of its round.

        Re-submitting the same winner is a no-op. Changing a decided winner
        is only possible while the next round has not been created.
        """
        bracket = self.get_bracket(bracket_id)
        match = bracket.find_match(match_id)
        if not match:
            raise MatchNotFound(match_id=match_id)

        if round_num is not None and match.round_num != round_num:
            raise RoundMismatch(match_id=match_id, round_num=round_num)

        if winner not in match.teams:
            raise InvalidWinner(winner=winner, match_id=match_id)

        if match.winner == winner:
            logger.info(f"Winner {winner} of {bracket_id}/{match_id} already recorded")
            return bracket

        if match.winner is not None and bracket.round_matches(match.round_num + 1):
            raise MatchAlreadyDecided(match_id=match_id)

        match.winner = winner
        # Touch the parent row so concurrent writers race on its version
        bracket.updated_at = datetime.utcnow()

        self.pending_events.append(
            match_result_event(bracket_id, match_id, winner, match.round_num)
        )
        self._advance(bracket, match.round_num)

        if commit:
            self.commit()

        logger.info(f"Recorded {winner} as winner of {bracket_id}/{match_id}")
        return bracket

    def delete_bracket(self, bracket_id: str):
        bracket = self.get_bracket(bracket_id)
        db.session.delete(bracket)
        self.commit()
        logger.info(f"Deleted bracket {bracket_id}")

    def commit(self):
        """Commit pending changes, then publish the events they produced."""
        try:
            commit_session()
        except Exception:
            self.pending_events.clear()
            raise
        self.publish_pending()

    def publish_pending(self):
        events = list(self.pending_events)
        self.pending_events.clear()
        for event in events:
            self.notifier.publish(event)

    def discard_pending(self):
        self.pending_events.clear()

    # ==================== Internals ====================

    def _advance(self, bracket: Bracket, round_num: int) -> List[int]:
        """Create every round that the decided winners now allow. Returns new round numbers."""
        created = []
        while True:
            matches = bracket.round_matches(round_num)
            if not matches or any(m.winner is None for m in matches):
                break

            if len(matches) == 1:
                champion = matches[0].winner
                self.pending_events.append(bracket_completed_event(bracket.bracket_id, champion))
                logger.info(f"Bracket {bracket.bracket_id} finished, champion {champion}")
                break

            next_round = round_num + 1
            if bracket.round_matches(next_round):
                break

            winners = [m.winner for m in matches]
            for position, i in enumerate(range(0, len(winners), 2), start=1):
                team1 = winners[i]
                team2 = winners[i + 1] if i + 1 < len(winners) else None
                bracket.matches.append(self._new_match(next_round, position, team1, team2))

            count = len(bracket.round_matches(next_round))
            self.pending_events.append(round_started_event(bracket.bracket_id, next_round, count))
            logger.info(f"Created round {next_round} of {bracket.bracket_id} with {count} matches")

            created.append(next_round)
            round_num = next_round

        return created

    def _new_match(self, round_num: int, position: int, team1: str, team2: Optional[str]) -> BracketMatch:
        return BracketMatch(
            match_id=generate_match_id(round_num, position),
            round_num=round_num,
            position=position,
            team1=team1,
            team2=team2,
            winner=team1 if team2 is None else None
        )

    def _next_bracket_id(self) -> str:
        existing = db.session.query(Bracket.bracket_id).all()
        highest = max((parse_bracket_sequence(row[0]) for row in existing), default=0)
        return generate_bracket_id(highest + 1)

    def _validate_pairings(self, pairings) -> List[tuple]:
        if not pairings:
            raise InvalidPairings("At least one matchup is required")

        pairs = []
        seen = set()
        for index, pair in enumerate(pairings, start=1):
            if not isinstance(pair, (list, tuple)) or not 1 <= len(pair) <= 2:
                raise InvalidPairings(f"Matchup {index} must be [team1] or [team1, team2]")

            team1 = pair[0]
            team2 = pair[1] if len(pair) == 2 else None

            if not isinstance(team1, str) or not team1.strip():
                raise InvalidPairings(f"Matchup {index} needs a first team")
            if team2 is not None and (not isinstance(team2, str) or not team2.strip()):
                raise InvalidPairings(f"Matchup {index} has an empty second team")

            team1 = team1.strip()
            team2 = team2.strip() if team2 is not None else None
            for team in (team1, team2):
                if team is None:
                    continue
                if team in seen:
                    raise InvalidPairings(f"Team {team} appears in more than one matchup")
                seen.add(team)

            pairs.append((team1, team2))
        return pairs
