"""
Pytest configuration and fixtures for banroom tests.
"""
import os
import sys
import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# Set testing environment before importing app
os.environ['FLASK_ENV'] = 'testing'
os.environ['SQLALCHEMY_DATABASE_URI'] = 'sqlite:///:memory:'

from banroom.app import create_app
from banroom.models import db, User, Team


PASSWORD = 'secret-pass'


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app('testing')
    
    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create database session for testing."""
    with app.app_context():
        # Clear all tables before each test
        db.session.remove()
        
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        
        yield db.session
        
        db.session.rollback()


def make_user(username, role='participant', team_name=None):
    user = User.create_user(
        username=username,
        email=f'{username}@example.com',
        password=PASSWORD,
        role=role
    )
    db.session.add(user)
    db.session.flush()
    
    if team_name:
        team = Team(team_name=team_name, members=[username], created_by_id=user.id)
        db.session.add(team)
        user.team = team
    
    db.session.commit()
    return user


@pytest.fixture
def admin(app, db_session):
    return make_user('admin', role='admin')


@pytest.fixture
def moderator(app, db_session):
    return make_user('mod', role='moderator')


@pytest.fixture
def players(app, db_session):
    """One captain per team T1..T4."""
    return {
        name: make_user(f'captain_{name.lower()}', team_name=name)
        for name in ('T1', 'T2', 'T3', 'T4')
    }


@pytest.fixture
def loner(app, db_session):
    """A participant without a team."""
    return make_user('loner')


@pytest.fixture
def bracket(app, db_session, admin):
    """Two matches: T1 vs T2, T3 vs T4."""
    return app.bracket_engine.initialize([['T1', 'T2'], ['T3', 'T4']], created_by='admin')


@pytest.fixture
def room(app, bracket):
    """Room for R1-M001 (T1 vs T2)."""
    return app.rooms.create_room(bracket.bracket_id, 'R1-M001', 'admin')


@pytest.fixture
def started_room(app, room, players):
    """Room where T1 joined first and T2 second."""
    app.rooms.join_room(room.room_code, players['T1'])
    app.rooms.join_room(room.room_code, players['T2'])
    return room


def login(client, user):
    return client.post('/auth/login', json={'email': user.email, 'password': PASSWORD})


@pytest.fixture
def login_as(client):
    """Log the test client in as the given user."""
    def _login(user):
        response = login(client, user)
        assert response.status_code == 200
        return client
    return _login
