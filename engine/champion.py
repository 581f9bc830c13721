"""Recording a tournament's champion once its final is decided."""

import logging

from flask import current_app

from engine.errors import ReferenceNotFoundError
from engine.fields import side_runs, side_squad_id, side_wickets, to_number
from models import db, current_time, Champion, Match, Player, Squad, Tournament

logger = logging.getLogger(__name__)

DEFAULT_KEY_PLAYER_LIMIT = 5
WICKET_WEIGHT = 10


def contribution_score(totals: dict) -> float:
    return to_number(totals.get('runs')) + to_number(totals.get('wickets')) * WICKET_WEIGHT


def rank_key_players(players, limit: int = DEFAULT_KEY_PLAYER_LIMIT) -> list[dict]:
    ranked = []
    for player in players:
        totals = player.match_stats or player.stats or {}
        if to_number(totals.get('runs')) > 0 or to_number(totals.get('wickets')) > 0:
            ranked.append((player, totals))
    ranked.sort(key=lambda item: contribution_score(item[1]), reverse=True)
    return [
        {
            'name': player.name,
            'role': player.role,
            'runs': to_number(totals.get('runs')),
            'wickets': to_number(totals.get('wickets')),
        }
        for player, totals in ranked[:limit]
    ]


def margin_summary(winner_name: str, margin) -> str:
    unit = 'run' if margin == 1 else 'runs'
    return f"{winner_name} won by {margin} {unit}"


def record_champion_if_needed(match_id) -> Champion | None:
    """Write the champion record when ``match_id`` is a decided final.

    Returns None when the match is not a finished final, was already
    recorded, ended level, or references a missing tournament or squad.
    The champion row, the match patch and the tournament status are three
    separate commits; replaying after a partial failure rewrites the same
    champion row.
    """
    match = db.session.get(Match, match_id)
    if match is None:
        raise ReferenceNotFoundError('match', match_id)
    if match.champion_recorded or match.stage != 'final' or not match.is_finished:
        return None

    runs_a, runs_b = side_runs(match, 'A'), side_runs(match, 'B')
    if runs_a == runs_b:
        logger.info('Final %s ended level, champion left for manual resolution', match_id)
        return None

    winner_side, loser_side = ('A', 'B') if runs_a > runs_b else ('B', 'A')
    winner_id, loser_id = side_squad_id(match, winner_side), side_squad_id(match, loser_side)
    if not winner_id or not loser_id:
        return None

    tournament = db.session.get(Tournament, match.tournament_id)
    if tournament is None:
        logger.warning('Tournament %s for final %s not found', match.tournament_id, match_id)
        return None
    winner = db.session.get(Squad, winner_id)
    loser = db.session.get(Squad, loser_id)
    if winner is None or loser is None:
        logger.warning('Squads %s/%s for final %s not found', winner_id, loser_id, match_id)
        return None

    limit = current_app.config.get('KEY_PLAYER_LIMIT', DEFAULT_KEY_PLAYER_LIMIT)
    players = Player.query.filter_by(squad_id=winner_id).order_by(Player.name, Player.id).all()
    key_players = rank_key_players(players, limit=limit)

    winner_runs, loser_runs = max(runs_a, runs_b), min(runs_a, runs_b)
    winner_wickets = side_wickets(match, winner_side)
    loser_wickets = side_wickets(match, loser_side)
    summary = margin_summary(winner.display_name, abs(runs_a - runs_b))

    champion = Champion.query.filter_by(tournament_id=tournament.id).first()
    if champion is None:
        champion = Champion(tournament_id=tournament.id)
        db.session.add(champion)

    champion.tournament_name = tournament.name
    champion.year = tournament.year
    champion.squad_id = winner_id
    champion.team_name = winner.display_name
    champion.captain = winner.captain or 'N/A'
    champion.vice_captain = winner.vice_captain
    champion.runner_up_id = loser_id
    champion.runner_up_name = loser.display_name
    champion.final_match_id = match.id
    champion.result_summary = summary
    champion.final_match_summary = (
        f"{tournament.display_title} - {summary}. "
        f"{winner.display_name} scored {winner_runs}/{winner_wickets} and "
        f"{loser.display_name} scored {loser_runs}/{loser_wickets}."
    )
    champion.venue = match.venue or 'Main Ground'
    champion.date = match.date or ''
    champion.time = match.time or ''
    champion.key_players = key_players
    db.session.commit()

    match.champion_recorded = True
    match.winner_squad_id = winner_id
    match.loser_squad_id = loser_id
    match.result_summary = match.result_summary or summary
    match.updated_at = current_time()
    db.session.commit()

    tournament.status = 'completed'
    db.session.commit()

    logger.info('Recorded %s as champion of tournament %s', champion.team_name, tournament.id)
    return champion
