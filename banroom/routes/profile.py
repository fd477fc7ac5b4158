from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user

from banroom.schemas import parse_body, UpdateProfileRequest
from shared.errors import NotFound

bp = Blueprint('profile', __name__, url_prefix='/profile')


@bp.route('/me', methods=['GET'])
@login_required
def view_profile():
    return jsonify(current_user.to_dict())


@bp.route('/me', methods=['PUT'])
@login_required
def update_profile():
    body = parse_body(UpdateProfileRequest)
    user = current_app.directory.update_profile(
        current_user._get_current_object(),
        username=body.username,
        email=body.email,
        password=body.password,
        team_name=body.team_name,
        team_members=body.team_members
    )
    return jsonify({'msg': 'Profile updated successfully', 'user': user.to_dict()})


@bp.route('/me/team', methods=['GET'])
@login_required
def view_team():
    if not current_user.team:
        raise NotFound("You are not part of any team")
    return jsonify(current_user.team.to_dict())
