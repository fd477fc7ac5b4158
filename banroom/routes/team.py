from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user

from banroom.schemas import parse_body, CreateTeamRequest

bp = Blueprint('team', __name__, url_prefix='/team')


@bp.route('/create', methods=['POST'])
@login_required
def create_team():
    body = parse_body(CreateTeamRequest)
    team = current_app.directory.create_team(current_user._get_current_object(), body.team_name, body.members)
    return jsonify({'msg': 'Team created', 'team': team.to_dict()}), 201
