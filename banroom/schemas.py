"""
Request bodies for the HTTP API.

Field aliases keep the camelCase names clients send; handlers work with the
snake_case attributes.
"""
from typing import List, Optional

from flask import request
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='forbid', str_strip_whitespace=True)


# ==================== Auth / profile ====================

class RegisterRequest(RequestModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=200)
    password: str = Field(..., min_length=1)


class LoginRequest(RequestModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class CreateTeamRequest(RequestModel):
    team_name: str = Field(..., alias='teamName', min_length=1, max_length=100)
    members: List[str] = Field(default_factory=list)


class UpdateProfileRequest(RequestModel):
    username: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=200)
    password: Optional[str] = None
    team_name: Optional[str] = Field(None, alias='teamName', max_length=100)
    team_members: Optional[List[Optional[str]]] = Field(None, alias='teamMembers')


# ==================== Bracket ====================

class InitializeBracketRequest(RequestModel):
    # Each matchup is [team1, team2]; team2 may be null for a bye
    matchups: List[List[Optional[str]]] = Field(..., min_length=1)


class UpdateBracketRequest(RequestModel):
    bracket_id: str = Field(..., alias='bracketId', min_length=1)
    match_id: str = Field(..., alias='matchId', min_length=1)
    winner_name: str = Field(..., alias='winnerName', min_length=1)
    # Optional cross-check against the round of the located match
    round_number: Optional[int] = Field(None, alias='roundNumber', ge=1)


# ==================== Room ====================

class CreateRoomRequest(RequestModel):
    bracket_id: str = Field(..., alias='bracketId', min_length=1)
    match_id: str = Field(..., alias='matchId', min_length=1)


class JoinRoomRequest(RequestModel):
    room_code: str = Field(..., alias='roomCode', min_length=1)


class MapBanRequest(RequestModel):
    room_code: str = Field(..., alias='roomCode', min_length=1)
    title: str = Field(..., min_length=1)


class SideSelectRequest(RequestModel):
    room_code: str = Field(..., alias='roomCode', min_length=1)
    choice: str = Field(..., min_length=1)


class SetWinnerRequest(RequestModel):
    room_code: str = Field(..., alias='roomCode', min_length=1)
    winner_username: Optional[str] = Field(None, alias='winnerUsername')
    winner_team: Optional[str] = Field(None, alias='winnerTeam')

    @model_validator(mode='after')
    def exactly_one_winner(self):
        if bool(self.winner_username) == bool(self.winner_team):
            raise ValueError("Provide exactly one of winnerUsername or winnerTeam")
        return self


def parse_body(model):
    """Validate the JSON body of the current request against ``model``."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    return model.model_validate(data)


def describe_errors(exc: ValidationError) -> List[dict]:
    return [
        {
            'field': '.'.join(str(part) for part in err['loc']) or None,
            'message': err['msg'],
        }
        for err in exc.errors()
    ]
