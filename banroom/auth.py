from functools import wraps

from flask import current_app
from flask_login import LoginManager, current_user

from shared.errors import Forbidden, Unauthorized

login_manager = LoginManager()


@login_manager.user_loader
def load_user(user_id):
    return current_app.directory.get_user(user_id)


@login_manager.unauthorized_handler
def unauthorized():
    raise Unauthorized()


def role_required(*roles, message: str = None):
    """Restrict a view to authenticated users holding one of ``roles``."""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                raise Unauthorized()
            if current_user.role not in roles:
                raise Forbidden(message or f"Requires role: {' or '.join(roles)}")
            return view(*args, **kwargs)
        return wrapper
    return decorator
