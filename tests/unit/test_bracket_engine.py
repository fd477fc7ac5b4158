"""
Unit tests for BracketEngine.
Tests: initialize, record_winner, round advancement, byes, idempotence, events
"""
import pytest
from sqlalchemy import text

from banroom.bracket_engine import BracketEngine
from banroom.models import db, Bracket, BracketMatch
from banroom.notifier import EventNotifier
from shared.errors import (
    BracketNotFound,
    MatchNotFound,
    InvalidWinner,
    InvalidPairings,
    MatchAlreadyDecided,
    RoundMismatch,
    StaleState,
)


@pytest.fixture
def engine(app, db_session):
    return BracketEngine()


def rounds(bracket):
    return bracket.to_dict()['rounds']


class TestInitialize:
    """Tests for initialize."""

    def test_creates_round_one(self, engine):
        bracket = engine.initialize([['T1', 'T2'], ['T3', 'T4']], created_by='admin')

        assert bracket.bracket_id == 'B001'
        assert bracket.created_by == 'admin'
        assert rounds(bracket) == [{
            'roundNumber': 1,
            'matchups': [
                {'matchId': 'R1-M001', 'team1': 'T1', 'team2': 'T2', 'winner': None},
                {'matchId': 'R1-M002', 'team1': 'T3', 'team2': 'T4', 'winner': None},
            ]
        }]

    def test_bracket_ids_are_sequential(self, engine):
        first = engine.initialize([['A', 'B']])
        second = engine.initialize([['C', 'D']])
        assert first.bracket_id == 'B001'
        assert second.bracket_id == 'B002'

    def test_persisted(self, engine):
        bracket = engine.initialize([['T1', 'T2']])
        assert Bracket.query.count() == 1
        assert BracketMatch.query.filter_by(bracket_pk=bracket.id).count() == 1

    def test_empty_pairings_rejected(self, engine):
        with pytest.raises(InvalidPairings):
            engine.initialize([])
        assert Bracket.query.count() == 0

    def test_duplicate_team_rejected(self, engine):
        with pytest.raises(InvalidPairings):
            engine.initialize([['T1', 'T2'], ['T1', 'T3']])

    def test_blank_team_rejected(self, engine):
        with pytest.raises(InvalidPairings):
            engine.initialize([['  ', 'T2']])

    def test_oversized_pair_rejected(self, engine):
        with pytest.raises(InvalidPairings):
            engine.initialize([['T1', 'T2', 'T3']])

    def test_bye_is_decided_at_creation(self, engine):
        bracket = engine.initialize([['T1', 'T2'], ['T3', None]])
        bye = bracket.find_match('R1-M002')
        assert bye.team2 is None
        assert bye.winner == 'T3'
        assert bracket.current_round == 1

    def test_all_byes_advance_immediately(self, engine):
        bracket = engine.initialize([['T1', None], ['T2', None]])
        assert bracket.current_round == 2
        final = bracket.find_match('R2-M001')
        assert (final.team1, final.team2, final.winner) == ('T1', 'T2', None)


class TestRecordWinner:
    """Tests for record_winner and advancement."""

    def test_first_winner_does_not_create_round(self, engine):
        bracket = engine.initialize([['A', 'B'], ['C', 'D']])
        engine.record_winner(bracket.bracket_id, 'R1-M001', 'A')

        assert len(rounds(bracket)) == 1
        assert bracket.find_match('R1-M001').winner == 'A'

    def test_completing_round_creates_next(self, engine):
        bracket = engine.initialize([['A', 'B'], ['C', 'D']])
        engine.record_winner(bracket.bracket_id, 'R1-M001', 'A')
        engine.record_winner(bracket.bracket_id, 'R1-M002', 'C')

        assert len(rounds(bracket)) == 2
        assert rounds(bracket)[1] == {
            'roundNumber': 2,
            'matchups': [{'matchId': 'R2-M001', 'team1': 'A', 'team2': 'C', 'winner': None}]
        }

    def test_end_to_end_t1_t4(self, engine):
        bracket = engine.initialize([['T1', 'T2'], ['T3', 'T4']])
        engine.record_winner(bracket.bracket_id, 'R1-M001', 'T1')
        engine.record_winner(bracket.bracket_id, 'R1-M002', 'T4')

        reloaded = engine.get_bracket(bracket.bracket_id)
        second = reloaded.round_matches(2)
        assert len(second) == 1
        assert second[0].to_dict() == {
            'matchId': 'R2-M001', 'team1': 'T1', 'team2': 'T4', 'winner': None
        }

    def test_final_finishes_bracket(self, engine):
        bracket = engine.initialize([['T1', 'T2'], ['T3', 'T4']])
        engine.record_winner(bracket.bracket_id, 'R1-M001', 'T1')
        engine.record_winner(bracket.bracket_id, 'R1-M002', 'T4')
        engine.record_winner(bracket.bracket_id, 'R2-M001', 'T4')

        assert len(rounds(bracket)) == 2
        data = bracket.to_dict()
        assert data['champion'] == 'T4'
        assert data['complete'] is True

    def test_odd_round_propagates_bye(self, engine):
        bracket = engine.initialize([['A', 'B'], ['C', 'D'], ['E', 'F']])
        for match_id, winner in (('R1-M001', 'A'), ('R1-M002', 'D'), ('R1-M003', 'E')):
            engine.record_winner(bracket.bracket_id, match_id, winner)

        second = bracket.round_matches(2)
        assert [(m.team1, m.team2, m.winner) for m in second] == [
            ('A', 'D', None),
            ('E', None, 'E'),
        ]

        engine.record_winner(bracket.bracket_id, 'R2-M001', 'D')
        final = bracket.round_matches(3)
        assert [(m.team1, m.team2) for m in final] == [('D', 'E')]

    def test_resubmission_is_idempotent(self, engine):
        bracket = engine.initialize([['A', 'B'], ['C', 'D']])
        engine.record_winner(bracket.bracket_id, 'R1-M001', 'A')
        engine.record_winner(bracket.bracket_id, 'R1-M002', 'C')
        engine.record_winner(bracket.bracket_id, 'R1-M002', 'C')
        engine.record_winner(bracket.bracket_id, 'R1-M001', 'A')

        assert len(rounds(bracket)) == 2
        assert BracketMatch.query.filter_by(bracket_pk=bracket.id, round_num=2).count() == 1

    def test_change_winner_before_next_round(self, engine):
        bracket = engine.initialize([['A', 'B'], ['C', 'D']])
        engine.record_winner(bracket.bracket_id, 'R1-M001', 'A')
        engine.record_winner(bracket.bracket_id, 'R1-M001', 'B')
        assert bracket.find_match('R1-M001').winner == 'B'

    def test_change_winner_after_next_round_rejected(self, engine):
        bracket = engine.initialize([['A', 'B'], ['C', 'D']])
        engine.record_winner(bracket.bracket_id, 'R1-M001', 'A')
        engine.record_winner(bracket.bracket_id, 'R1-M002', 'C')

        with pytest.raises(MatchAlreadyDecided):
            engine.record_winner(bracket.bracket_id, 'R1-M001', 'B')

    def test_round_number_must_match(self, engine):
        bracket = engine.initialize([['A', 'B'], ['C', 'D']])
        with pytest.raises(RoundMismatch):
            engine.record_winner(bracket.bracket_id, 'R1-M001', 'A', round_num=2)
        assert bracket.find_match('R1-M001').winner is None

        engine.record_winner(bracket.bracket_id, 'R1-M001', 'A', round_num=1)
        assert bracket.find_match('R1-M001').winner == 'A'

    def test_stale_write_rejected(self, engine):
        created = engine.initialize([['A', 'B'], ['C', 'D']])
        bracket = engine.get_bracket(created.bracket_id)
        version = bracket.version_id
        assert bracket.find_match('R1-M001') is not None

        # Another worker records a result behind this session's back
        db.session.connection().execute(
            text("UPDATE brackets SET version_id = version_id + 1 WHERE bracket_id = :id"),
            {'id': bracket.bracket_id}
        )

        with pytest.raises(StaleState):
            engine.record_winner(bracket.bracket_id, 'R1-M001', 'A')

        db.session.expire_all()
        reloaded = engine.get_bracket(created.bracket_id)
        assert reloaded.version_id == version
        assert reloaded.find_match('R1-M001').winner is None
        assert engine.pending_events == []

    def test_winner_must_play_in_match(self, engine):
        bracket = engine.initialize([['A', 'B'], ['C', 'D']])
        with pytest.raises(InvalidWinner):
            engine.record_winner(bracket.bracket_id, 'R1-M001', 'C')
        assert bracket.find_match('R1-M001').winner is None

    def test_match_not_found(self, engine):
        bracket = engine.initialize([['A', 'B']])
        with pytest.raises(MatchNotFound):
            engine.record_winner(bracket.bracket_id, 'R9-M001', 'A')

    def test_bracket_not_found(self, engine):
        with pytest.raises(BracketNotFound):
            engine.record_winner('B999', 'R1-M001', 'A')


class TestQueries:
    """Tests for get/list/delete."""

    def test_list_brackets(self, engine):
        engine.initialize([['A', 'B']])
        engine.initialize([['C', 'D']])
        ids = {b.bracket_id for b in engine.list_brackets()}
        assert ids == {'B001', 'B002'}

    def test_delete_bracket(self, engine):
        bracket = engine.initialize([['A', 'B']])
        engine.delete_bracket(bracket.bracket_id)

        assert Bracket.query.count() == 0
        assert BracketMatch.query.count() == 0
        with pytest.raises(BracketNotFound):
            engine.get_bracket('B001')

    def test_id_sequence_skips_past_highest(self, engine):
        engine.initialize([['A', 'B']])
        engine.initialize([['C', 'D']])
        engine.delete_bracket('B001')
        assert engine.initialize([['E', 'F']]).bracket_id == 'B003'


class TestEvents:
    """Tests for event publishing."""

    def test_events_published_after_commit(self, app, db_session, mocker):
        redis_client = mocker.MagicMock()
        engine = BracketEngine(notifier=EventNotifier(redis_client))

        bracket = engine.initialize([['A', 'B'], ['C', 'D']])
        engine.record_winner(bracket.bracket_id, 'R1-M001', 'A')
        engine.record_winner(bracket.bracket_id, 'R1-M002', 'C')

        channels = {call.args[0] for call in redis_client.publish.call_args_list}
        payloads = [call.args[1] for call in redis_client.publish.call_args_list]
        assert channels == {'bracket:B001:events'}
        assert any('"round.started"' in p for p in payloads)
        assert sum('"match.result"' in p for p in payloads) == 2
        assert engine.pending_events == []

    def test_uncommitted_events_are_held(self, app, db_session, mocker):
        redis_client = mocker.MagicMock()
        engine = BracketEngine(notifier=EventNotifier(redis_client))

        engine.initialize([['A', 'B']], commit=False)
        assert redis_client.publish.call_count == 0
        assert len(engine.pending_events) >= 1

        engine.commit()
        assert redis_client.publish.call_count >= 1
