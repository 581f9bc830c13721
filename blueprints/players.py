import math

from flask import Blueprint, request, jsonify

from models import db, Player, Squad
from engine.career import empty_totals
from blueprints.auth import require_admin

players_bp = Blueprint('players', __name__, url_prefix='/api/players')


def display_totals(totals: dict | None) -> dict:
    """Career totals made safe for JSON clients.

    An undefined bowling average (runs conceded, no wickets) is stored as
    infinity; clients get ``null`` plus a ``"-"`` display string.
    """
    data = dict(totals or empty_totals())
    average = data.get('bowling_average')
    if isinstance(average, float) and math.isinf(average):
        data['bowling_average'] = None
        data['bowling_average_display'] = '-'
    else:
        data['bowling_average_display'] = f"{average or 0:.2f}"
    return data


def serialize_player(player: Player, include_history: bool = True) -> dict:
    data = {
        'id': player.id,
        'name': player.name,
        'role': player.role,
        'squad_id': player.squad_id,
        'stats': display_totals(player.stats),
        'last_match_summary': player.last_match_summary,
    }
    if include_history:
        data['past_matches'] = player.past_matches or []
    return data


@players_bp.route('', methods=['POST'])
@require_admin
def register_player():
    payload = request.get_json(silent=True) or {}
    name = (payload.get('name') or '').strip()
    if not name:
        return jsonify({'success': False, 'error': 'Player name is required'}), 400

    squad_id = payload.get('squad_id')
    if squad_id is not None and db.session.get(Squad, squad_id) is None:
        return jsonify({'success': False, 'error': 'Squad not found'}), 400

    totals = empty_totals()
    player = Player(
        name=name,
        role=payload.get('role'),
        squad_id=squad_id,
        past_matches=[],
        stats=totals,
        match_stats=dict(totals),
    )
    db.session.add(player)
    db.session.commit()

    return jsonify({'success': True, 'data': serialize_player(player)}), 201


@players_bp.route('/<int:player_id>', methods=['GET'])
def get_player(player_id):
    player = db.session.get(Player, player_id)
    if player is None:
        return jsonify({'success': False, 'error': 'Player not found'}), 404
    return jsonify({'success': True, 'data': serialize_player(player)})
