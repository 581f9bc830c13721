"""Tournament structure, standings, knockout seeding and champion routes."""

from flask import Blueprint, request, jsonify

from models import db, Champion, Tournament
from engine import compute_group_standings, seed_knockout_stage
from engine.stages import normalise_group_stage, normalise_knockout_stage
from blueprints.auth import require_admin

tournaments_bp = Blueprint('tournaments', __name__, url_prefix='/api/tournaments')


@tournaments_bp.route('/<int:tournament_id>', methods=['GET'])
def get_tournament(tournament_id):
    tournament = db.session.get(Tournament, tournament_id)
    if tournament is None:
        return jsonify({'success': False, 'error': 'Tournament not found'}), 404
    return jsonify({'success': True, 'data': tournament.to_dict()})


@tournaments_bp.route('/<int:tournament_id>/structure', methods=['PUT'])
@require_admin
def update_structure(tournament_id):
    """Store normalised group and knockout configuration."""
    tournament = db.session.get(Tournament, tournament_id)
    if tournament is None:
        return jsonify({'success': False, 'error': 'Tournament not found'}), 404

    payload = request.get_json(silent=True) or {}
    if 'group_stage' in payload:
        tournament.group_stage = normalise_group_stage(payload['group_stage'])
    if 'knockout_stage' in payload:
        tournament.knockout_stage = normalise_knockout_stage(payload['knockout_stage'])
    db.session.commit()

    return jsonify({'success': True, 'data': tournament.to_dict()})


@tournaments_bp.route('/<int:tournament_id>/standings', methods=['GET'])
def group_standings(tournament_id):
    standings = compute_group_standings(tournament_id)
    return jsonify({'success': True, **standings.to_dict()})


@tournaments_bp.route('/<int:tournament_id>/seed-knockout', methods=['POST'])
@require_admin
def seed_knockout(tournament_id):
    standings = compute_group_standings(tournament_id)
    pairings = seed_knockout_stage(tournament_id, standings=standings)
    return jsonify({
        'success': True,
        'message': 'Knockout stage seeded successfully',
        'pairings': [pairing.to_dict() for pairing in pairings],
        'standings': standings.to_dict()['standings'],
    })


@tournaments_bp.route('/<int:tournament_id>/champion', methods=['GET'])
def champion(tournament_id):
    record = Champion.query.filter_by(tournament_id=tournament_id).first()
    if record is None:
        return jsonify({'success': False, 'error': 'Champion not recorded'}), 404
    return jsonify({'success': True, 'data': record.to_dict()})
