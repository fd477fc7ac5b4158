#!/usr/bin/env python3
"""
Database management script for deployment.

Usage:
    python manage_db.py deploy
    python manage_db.py create-admin <username> <email> <password> [admin|moderator]
"""
import os
import sys

# Add current directory to path so we can import banroom
sys.path.append(os.getcwd())

from banroom.app import create_app
from banroom.models import db
from shared.errors import BanroomError


def deploy():
    """Create any missing tables."""
    print("Creating database tables...")
    app = create_app()
    with app.app_context():
        db.create_all()
        print("✓ Database tables ready.")


def create_admin(username: str, email: str, password: str, role: str = 'admin'):
    """Seed a privileged account; registration only ever creates participants."""
    if role not in ('admin', 'moderator'):
        print(f"Role must be admin or moderator, got {role}")
        sys.exit(1)

    app = create_app()
    with app.app_context():
        try:
            app.directory.register(username, email, password, role=role)
        except BanroomError as e:
            print(f"Error creating {role}: {e}")
            sys.exit(1)
        print(f"✓ Created {role} {username}.")


if __name__ == '__main__':
    command = sys.argv[1] if len(sys.argv) > 1 else 'deploy'

    if command == 'deploy':
        deploy()
    elif command == 'create-admin' and len(sys.argv) in (5, 6):
        create_admin(*sys.argv[2:])
    else:
        print(__doc__)
        sys.exit(1)
