import logging
from datetime import datetime
from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.security import generate_password_hash, check_password_hash

from shared.draft_engine import DraftSession
from shared.errors import StaleState

logger = logging.getLogger(__name__)

db = SQLAlchemy()


ROLES = ('participant', 'moderator', 'admin')


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(100), unique=True, nullable=False, index=True)
    email = db.Column(db.String(200), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='participant')
    team_id = db.Column(db.Integer, db.ForeignKey('teams.id'), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    team = db.relationship('Team', back_populates='users')

    def get_id(self):
        """Return the user ID for Flask-Login session management."""
        return str(self.id)

    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @staticmethod
    def create_user(username: str, email: str, password: str, role: str = 'participant') -> 'User':
        user = User(username=username, email=email, role=role)
        user.set_password(password)
        return user

    def to_dict(self):
        return {
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'team': self.team.to_dict() if self.team else None,
        }


class Team(db.Model):
    __tablename__ = 'teams'

    id = db.Column(db.Integer, primary_key=True)
    team_name = db.Column(db.String(100), unique=True, nullable=False, index=True)
    members = db.Column(db.JSON, nullable=False, default=list)  # In-game names
    created_by_id = db.Column(db.Integer, nullable=False, index=True)  # users.id of the creator
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    users = db.relationship('User', back_populates='team')

    def to_dict(self):
        return {
            'teamName': self.team_name,
            'members': list(self.members or []),
        }


class Bracket(db.Model):
    __tablename__ = 'brackets'

    id = db.Column(db.Integer, primary_key=True)
    bracket_id = db.Column(db.String(20), unique=True, nullable=False, index=True)
    created_by = db.Column(db.String(100), nullable=True)
    version_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    matches = db.relationship(
        'BracketMatch',
        back_populates='bracket',
        cascade='all, delete-orphan',
        order_by='[BracketMatch.round_num, BracketMatch.position]'
    )

    __mapper_args__ = {'version_id_col': version_id}

    def round_matches(self, round_num: int):
        return [m for m in self.matches if m.round_num == round_num]

    @property
    def round_numbers(self):
        return sorted({m.round_num for m in self.matches})

    @property
    def current_round(self) -> int:
        numbers = self.round_numbers
        return numbers[-1] if numbers else 0

    def find_match(self, match_id: str):
        for m in self.matches:
            if m.match_id == match_id:
                return m
        return None

    @property
    def champion(self):
        """Winner of the final, once the last round is a single decided match."""
        final = self.round_matches(self.current_round)
        if len(final) == 1 and final[0].winner:
            return final[0].winner
        return None

    def to_dict(self):
        return {
            'bracketId': self.bracket_id,
            'createdBy': self.created_by,
            'currentRound': self.current_round,
            'champion': self.champion,
            'complete': self.champion is not None,
            'rounds': [
                {
                    'roundNumber': n,
                    'matchups': [m.to_dict() for m in self.round_matches(n)],
                }
                for n in self.round_numbers
            ],
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


class BracketMatch(db.Model):
    __tablename__ = 'bracket_matches'

    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.String(20), nullable=False, index=True)
    bracket_pk = db.Column(db.Integer, db.ForeignKey('brackets.id'), nullable=False)
    round_num = db.Column(db.Integer, nullable=False)
    position = db.Column(db.Integer, nullable=False)

    team1 = db.Column(db.String(100), nullable=True)
    team2 = db.Column(db.String(100), nullable=True)  # None is a bye
    winner = db.Column(db.String(100), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bracket = db.relationship('Bracket', back_populates='matches')

    __table_args__ = (
        db.UniqueConstraint('match_id', 'bracket_pk', name='unique_match_per_bracket'),
    )

    @property
    def teams(self):
        return [t for t in (self.team1, self.team2) if t is not None]

    def to_dict(self):
        return {
            'matchId': self.match_id,
            'team1': self.team1,
            'team2': self.team2,
            'winner': self.winner,
        }


class Room(db.Model):
    __tablename__ = 'rooms'

    id = db.Column(db.Integer, primary_key=True)
    room_code = db.Column(db.String(6), unique=True, nullable=False, index=True)
    admin = db.Column(db.String(100), nullable=False)  # Creator's username

    # Back-reference into a bracket, not ownership
    bracket_id = db.Column(db.String(20), nullable=False, index=True)
    match_id = db.Column(db.String(20), nullable=False)

    # Embedded draft session
    pool = db.Column(db.JSON, nullable=False)
    titles = db.Column(db.JSON, nullable=False)
    participant1 = db.Column(db.String(100), nullable=True)
    participant2 = db.Column(db.String(100), nullable=True)
    current_turn = db.Column(db.Integer, nullable=False, default=0)
    game_started = db.Column(db.Boolean, nullable=False, default=False)

    resolved_title = db.Column(db.String(100), nullable=True)
    side_choice = db.Column(db.String(20), nullable=True)
    winner = db.Column(db.String(100), nullable=True)

    version_id = db.Column(db.Integer, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {'version_id_col': version_id}

    @property
    def participants(self):
        return [p for p in (self.participant1, self.participant2) if p]

    def draft(self) -> DraftSession:
        return DraftSession.from_record(self)

    def to_dict(self):
        data = {
            'roomCode': self.room_code,
            'admin': self.admin,
            'bracketId': self.bracket_id,
            'matchId': self.match_id,
            'selectedMap': self.resolved_title,
            'sideChoice': self.side_choice,
            'winner': self.winner,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }
        data.update(self.draft().to_dict())
        return data


def commit_session():
    """Commit the current unit of work, turning lost optimistic races into StaleState."""
    try:
        db.session.commit()
    except (StaleDataError, IntegrityError) as e:
        db.session.rollback()
        logger.warning(f"Rejected concurrent write: {e.__class__.__name__}")
        raise StaleState() from e
