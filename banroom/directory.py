import logging
from typing import List, Optional

from .models import db, User, Team, commit_session
from shared.errors import (
    AlreadyExists,
    Conflict,
    Forbidden,
    InvalidCredentials,
    NoTeam,
    RosterTooLarge,
    TeamNotFound,
    UserNotFound,
    Validation,
)

logger = logging.getLogger(__name__)


class UserDirectory:
    """
    Users, their roles and their teams.

    This is the identity side the room and bracket flows consult: who is
    calling, what role they hold and which team they play for.
    """

    def __init__(self, max_team_size: int = 5):
        self.max_team_size = max_team_size

    # ==================== Lookups ====================

    def get_user(self, user_id) -> Optional[User]:
        try:
            return db.session.get(User, int(user_id))
        except (TypeError, ValueError):
            return None

    def find_by_username(self, username: str) -> User:
        user = User.query.filter_by(username=username).first()
        if not user:
            raise UserNotFound(username=username)
        return user

    def team_of(self, user: User) -> Team:
        if not user.team:
            raise NoTeam()
        return user.team

    def team_name_of(self, user: User) -> str:
        return self.team_of(user).team_name

    def team_name_for_username(self, username: str) -> str:
        """Resolve a player's username to the name of the team they play for."""
        user = self.find_by_username(username)
        if not user.team:
            raise TeamNotFound()
        return user.team.team_name

    # ==================== Accounts ====================

    def register(self, username: str, email: str, password: str, role: str = 'participant') -> User:
        if User.query.filter_by(email=email).first():
            raise AlreadyExists("User already exists")
        if User.query.filter_by(username=username).first():
            raise AlreadyExists("Username is taken")

        user = User.create_user(username=username, email=email, password=password, role=role)
        db.session.add(user)
        commit_session()

        logger.info(f"Registered user {username} ({role})")
        return user

    def authenticate(self, email: str, password: str) -> User:
        user = User.query.filter_by(email=email).first()
        if not user or not user.check_password(password):
            raise InvalidCredentials()
        return user

    def update_profile(
        self,
        user: User,
        username: str = None,
        email: str = None,
        password: str = None,
        team_name: str = None,
        team_members: List[Optional[str]] = None
    ) -> User:
        """Update account fields and, for the team's creator, the team itself."""
        if username and username != user.username:
            if User.query.filter_by(username=username).first():
                raise AlreadyExists("Username is taken")
            user.username = username
        if email and email != user.email:
            if User.query.filter_by(email=email).first():
                raise AlreadyExists("Email is already registered")
            user.email = email
        if password:
            user.set_password(password)

        if team_name or team_members:
            self._update_team(user, team_name, team_members)

        commit_session()
        logger.info(f"Updated profile of {user.username}")
        return user

    # ==================== Teams ====================

    def create_team(self, user: User, team_name: str, members: List[str]) -> Team:
        if user.role != 'participant':
            raise Forbidden("Only participants can create teams")

        # The creator takes one of the slots
        if len(members) > self.max_team_size - 1:
            raise RosterTooLarge(limit=self.max_team_size)

        if Team.query.filter_by(created_by_id=user.id).first():
            raise AlreadyExists("You have already created a team")
        if user.team:
            raise Conflict("You are already on a team")
        if Team.query.filter_by(team_name=team_name).first():
            raise AlreadyExists(f"Team name {team_name} is taken")

        team = Team(
            team_name=team_name,
            members=list(members) + [user.username],
            created_by_id=user.id
        )
        db.session.add(team)
        user.team = team
        commit_session()

        logger.info(f"{user.username} created team {team_name} with {len(team.members)} members")
        return team

    def _update_team(self, user: User, team_name: Optional[str], team_members: Optional[list]):
        if not user.team:
            raise Validation("You do not have a team to update")

        team = user.team
        if team.created_by_id != user.id:
            raise Forbidden("Only the team creator can update the team")

        if team_name and team_name != team.team_name:
            if Team.query.filter_by(team_name=team_name).first():
                raise AlreadyExists(f"Team name {team_name} is taken")
            team.team_name = team_name

        if team_members:
            if len(team_members) > self.max_team_size:
                raise RosterTooLarge(limit=self.max_team_size)

            # Positional update: empty entries keep the existing member
            members = list(team.members or [])
            for i, name in enumerate(team_members):
                if not name:
                    continue
                if i < len(members):
                    members[i] = name
                else:
                    members.append(name)

            if user.username not in members:
                members.append(user.username)
            if len(members) > self.max_team_size:
                raise RosterTooLarge(limit=self.max_team_size)
            team.members = members
