from flask import Blueprint, jsonify, current_app
from flask_login import login_user, logout_user

from banroom.schemas import parse_body, RegisterRequest, LoginRequest

bp = Blueprint('auth', __name__, url_prefix='/auth')


@bp.route('/register', methods=['POST'])
def register():
    body = parse_body(RegisterRequest)
    user = current_app.directory.register(body.username, body.email, body.password)
    login_user(user)
    return jsonify({'msg': 'User registered and logged in', 'user': user.to_dict()}), 201


@bp.route('/login', methods=['POST'])
def login():
    body = parse_body(LoginRequest)
    user = current_app.directory.authenticate(body.email, body.password)
    login_user(user)
    return jsonify({'msg': 'User logged in', 'user': user.to_dict()})


@bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'msg': 'Logged out'})
