from flask import Blueprint, request, jsonify, current_app
from flask_login import login_required, current_user

from banroom.auth import role_required
from banroom.schemas import parse_body, InitializeBracketRequest, UpdateBracketRequest

bp = Blueprint('bracket', __name__, url_prefix='/bracket')

MAX_PAGE_SIZE = 100


def get_bracket_engine():
    return current_app.bracket_engine


@bp.route('/initialize', methods=['POST'])
@role_required('admin', message='Only admins can initialize brackets')
def initialize_bracket():
    body = parse_body(InitializeBracketRequest)
    bracket = get_bracket_engine().initialize(body.matchups, created_by=current_user.username)
    return jsonify({
        'msg': 'Bracket initialized successfully',
        'bracket': bracket.to_dict()
    }), 201


@bp.route('/update', methods=['POST'])
@role_required('admin', message='Only admins can update brackets')
def update_bracket():
    body = parse_body(UpdateBracketRequest)
    bracket = get_bracket_engine().record_winner(
        body.bracket_id, body.match_id, body.winner_name, round_num=body.round_number
    )
    return jsonify({
        'msg': 'Match winner updated and next round created if necessary.',
        'bracket': bracket.to_dict()
    })


@bp.route('', methods=['GET'])
@login_required
def list_brackets():
    limit = min(max(request.args.get('limit', 50, type=int), 0), MAX_PAGE_SIZE)
    offset = max(request.args.get('offset', 0, type=int), 0)
    brackets = get_bracket_engine().list_brackets(limit=limit, offset=offset)
    return jsonify({
        'brackets': [b.to_dict() for b in brackets],
        'count': len(brackets),
        'limit': limit,
        'offset': offset
    })


@bp.route('/<bracket_id>', methods=['GET'])
@login_required
def get_bracket(bracket_id):
    bracket = get_bracket_engine().get_bracket(bracket_id)
    return jsonify({'bracket': bracket.to_dict()})


@bp.route('/<bracket_id>', methods=['DELETE'])
@role_required('admin', message='Only admins can delete brackets')
def delete_bracket(bracket_id):
    get_bracket_engine().delete_bracket(bracket_id)
    return jsonify({'msg': f'Bracket {bracket_id} deleted'})
