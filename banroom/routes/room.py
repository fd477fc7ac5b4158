from flask import Blueprint, jsonify, current_app
from flask_login import login_required, current_user

from banroom.auth import role_required
from shared.errors import Forbidden
from banroom.schemas import (
    parse_body,
    CreateRoomRequest,
    JoinRoomRequest,
    MapBanRequest,
    SideSelectRequest,
    SetWinnerRequest,
)

bp = Blueprint('room', __name__, url_prefix='/room')


def get_coordinator():
    return current_app.rooms


@bp.route('/create', methods=['POST'])
@role_required('admin', 'moderator', message='Only admins or moderators can create rooms')
def create_room():
    body = parse_body(CreateRoomRequest)
    room = get_coordinator().create_room(body.bracket_id, body.match_id, current_user.username)
    return jsonify({'roomCode': room.room_code}), 201


@bp.route('/<room_code>', methods=['GET'])
@login_required
def get_room(room_code):
    room = get_coordinator().get_room(room_code)
    return jsonify({'room': room.to_dict()})


@bp.route('/join', methods=['POST'])
@login_required
def join_room():
    body = parse_body(JoinRoomRequest)
    room, started = get_coordinator().join_room(body.room_code, current_user._get_current_object())

    if started:
        msg = 'Map selection started. Both participants have joined.'
    else:
        msg = 'Successfully joined the room. Waiting for another participant.'
    return jsonify({'msg': msg, 'room': room.to_dict()})


@bp.route('/mapban', methods=['POST'])
@login_required
def map_ban():
    body = parse_body(MapBanRequest)
    room, result = get_coordinator().ban_title(body.room_code, current_user._get_current_object(), body.title)

    if result.complete:
        return jsonify({
            'msg': f'Selected map is: {result.resolved}',
            'selectedMap': result.resolved,
            'room': room.to_dict()
        })
    return jsonify({
        'msg': 'Title selected successfully',
        'remainingTitles': result.remaining
    })


@bp.route('/side-select', methods=['POST'])
@login_required
def side_select():
    body = parse_body(SideSelectRequest)
    room = get_coordinator().select_side(body.room_code, current_user._get_current_object(), body.choice)
    return jsonify({'msg': f'Player 2 has chosen: {body.choice}', 'room': room.to_dict()})


@bp.route('/set-winner', methods=['POST'])
@login_required
def set_winner():
    coordinator = get_coordinator()
    if not coordinator.can_manage(current_user.role):
        raise Forbidden("Only admins or moderators can update the winner")

    body = parse_body(SetWinnerRequest)
    winner_team = coordinator.resolve_winner_team(body.winner_username, body.winner_team)
    room, bracket = coordinator.record_room_winner(body.room_code, winner_team, current_user.role)
    return jsonify({
        'msg': 'Room winner and bracket updated successfully',
        'room': room.to_dict(),
        'bracket': bracket.to_dict()
    })
