"""Admin routes that move a match through its result lifecycle."""

import logging

from flask import Blueprint, request, jsonify, g

from models import db, current_time, FINISHED_STATUSES, MATCH_STATUSES, Match
from engine import (
    record_champion_if_needed,
    remove_match_stats_from_players,
    sync_player_stats_for_match,
)
from engine.stages import normalise_stage
from blueprints.auth import require_admin

matches_bp = Blueprint('matches', __name__, url_prefix='/api/matches')
logger = logging.getLogger(__name__)

SCORE_FIELDS = (
    'runs1', 'runs2', 'wickets1', 'wickets2', 'balls1', 'balls2', 'overs1', 'overs2',
    'score', 'team_a_playing_xi', 'team_b_playing_xi', 'result_summary',
)
INTEGER_FIELDS = {'runs1', 'runs2', 'wickets1', 'wickets2', 'balls1', 'balls2'}


def _get_match_or_404(match_id):
    match = db.session.get(Match, match_id)
    if match is None:
        return None, (jsonify({'success': False, 'error': 'Match not found'}), 404)
    return match, None


def _run_finished_hooks(match_id, sync_stats: bool) -> dict:
    synced = sync_player_stats_for_match(match_id) if sync_stats else 0
    champion = record_champion_if_needed(match_id)
    return {
        'players_synced': synced,
        'champion': champion.to_dict() if champion else None,
    }


@matches_bp.route('/<int:match_id>', methods=['GET'])
def get_match(match_id):
    match, error = _get_match_or_404(match_id)
    if error:
        return error
    return jsonify({'success': True, 'data': match.to_dict()})


@matches_bp.route('/<int:match_id>/status', methods=['PUT'])
@require_admin
def update_match_status(match_id):
    """Manually set a match status; finishing it feeds the statistics pipeline."""
    match, error = _get_match_or_404(match_id)
    if error:
        return error

    new_status = (request.get_json(silent=True) or {}).get('status')
    if new_status not in MATCH_STATUSES:
        return jsonify({
            'success': False,
            'error': f"Invalid status. Must be one of: {', '.join(MATCH_STATUSES)}",
        }), 400

    match.status = new_status
    match.updated_at = current_time()
    if new_status in FINISHED_STATUSES:
        match.manually_ended = True
        match.ended_at = current_time()
    db.session.commit()

    logger.info('Match %s status updated to %s by %s', match_id, new_status, g.current_user.username)

    hooks = {}
    if new_status in FINISHED_STATUSES:
        hooks = _run_finished_hooks(match_id, sync_stats=True)

    match = db.session.get(Match, match_id)
    return jsonify({'success': True, 'data': match.to_dict(), **hooks})


@matches_bp.route('/<int:match_id>/score', methods=['PUT'])
@require_admin
def update_match_score(match_id):
    match, error = _get_match_or_404(match_id)
    if error:
        return error

    payload = request.get_json(silent=True) or {}
    errors = []
    for field in INTEGER_FIELDS & payload.keys():
        value = payload[field]
        if value is not None and (not isinstance(value, int) or isinstance(value, bool) or value < 0):
            errors.append(f'{field} must be a non-negative integer')
    for field in ('wickets1', 'wickets2'):
        if isinstance(payload.get(field), int) and payload[field] > 10:
            errors.append(f'{field} must be between 0 and 10')
    if 'status' in payload and payload['status'] not in MATCH_STATUSES:
        errors.append(f"status must be one of: {', '.join(MATCH_STATUSES)}")
    if errors:
        return jsonify({'success': False, 'errors': errors}), 400

    stage_info = normalise_stage(payload) if payload.get('stage') else None

    for field in SCORE_FIELDS:
        if field in payload:
            setattr(match, field, payload[field])
    if 'status' in payload:
        match.status = payload['status']

    if stage_info:
        for attr, value in stage_info.items():
            setattr(match, attr, value)
        match.is_final = stage_info['stage'] == 'final'

    match.updated_at = current_time()
    db.session.commit()

    hooks = _run_finished_hooks(match_id, sync_stats=match.is_finished)
    match = db.session.get(Match, match_id)
    return jsonify({'success': True, 'data': match.to_dict(), **hooks})


@matches_bp.route('/<int:match_id>', methods=['DELETE'])
@require_admin
def delete_match(match_id):
    match, error = _get_match_or_404(match_id)
    if error:
        return error

    removed = remove_match_stats_from_players(match_id)

    match = db.session.get(Match, match_id)
    db.session.delete(match)
    db.session.commit()

    return jsonify({
        'success': True,
        'message': 'Match deleted successfully and player stats updated',
        'players_updated': removed,
    })
