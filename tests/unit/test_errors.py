"""
Unit tests for the error taxonomy.
Tests: families, status codes, default reasons, to_dict
"""
import pytest

from shared.errors import (
    AlreadyInRoom,
    BanroomError,
    BracketNotFound,
    Conflict,
    DuplicateParticipant,
    Forbidden,
    InvalidChoice,
    NotFound,
    NotYourTurn,
    StaleState,
    Unauthorized,
    Validation,
)


class TestStatusCodes:
    """Tests for family status codes."""

    @pytest.mark.parametrize('error_cls,status', [
        (NotFound, 404),
        (Forbidden, 403),
        (Unauthorized, 401),
        (Conflict, 400),
        (Validation, 400),
        (StaleState, 409),
    ])
    def test_family_status(self, error_cls, status):
        assert error_cls().status_code == status

    def test_kind_is_class_name(self):
        error = BracketNotFound(bracket_id='B009')
        assert error.kind == 'BracketNotFound'
        assert error.family == 'NotFound'
        assert isinstance(error, BanroomError)


class TestReasons:
    """Tests for reasons and serialization."""

    def test_default_reason_uses_context(self):
        assert str(BracketNotFound(bracket_id='B009')) == 'Bracket B009 not found'

    def test_explicit_reason_wins(self):
        error = NotYourTurn("It is not your turn to choose")
        assert error.reason == "It is not your turn to choose"

    def test_invalid_choice_lists_choices(self):
        error = InvalidChoice(choices=('attacking', 'defending'))
        assert 'attacking, defending' in error.reason

    def test_already_in_room_is_duplicate(self):
        assert issubclass(AlreadyInRoom, DuplicateParticipant)

    def test_to_dict(self):
        assert StaleState().to_dict() == {
            'error': 'State changed while the request was processed, reload and retry',
            'kind': 'StaleState',
            'family': 'Conflict',
        }
