"""Career totals and the per-player write path for finished matches."""

import logging
import math

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from engine.errors import PlayerWriteConflictError, ReferenceNotFoundError
from engine.fields import lineup_value, round_stat, side_name, side_squad_id, to_number
from engine.summary import (
    RESULT_LOST,
    RESULT_TIED,
    RESULT_WON,
    build_player_match_summary,
    get_result_for_squad,
)
from models import db, current_time, Match, Player

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5

SUMMED_FIELDS = ('runs', 'balls', 'fours', 'sixes', 'wickets', 'balls_bowled', 'runs_conceded')


def empty_totals() -> dict:
    return aggregate_career_stats([])


def batting_average(runs, dismissals, batting_innings):
    if dismissals > 0:
        return round_stat(runs / dismissals)
    # Never dismissed: the runs themselves stand in for the average.
    if batting_innings > 0 and runs > 0:
        return round_stat(runs)
    return 0


def bowling_average(runs_conceded, wickets):
    """Runs per wicket; ``math.inf`` when runs were conceded without a wicket."""
    if wickets > 0:
        return round_stat(runs_conceded / wickets)
    if runs_conceded > 0:
        return math.inf
    return 0


def aggregate_career_stats(summaries) -> dict:
    """Fold match summaries into career totals.

    Rates are derived once from the folded sums, never carried over from a
    previous set of totals.
    """
    acc = dict.fromkeys(SUMMED_FIELDS, 0)
    acc.update(
        matches=0, batting_innings=0, bowling_innings=0, dismissals=0, not_outs=0,
        wins=0, losses=0, ties=0, highest=0, fifties=0, hundreds=0,
    )

    for summary in summaries or []:
        if not isinstance(summary, dict):
            continue
        if summary.get('played'):
            acc['matches'] += 1
        for field in SUMMED_FIELDS:
            acc[field] += to_number(summary.get(field))

        if summary.get('batted'):
            acc['batting_innings'] += 1
            if summary.get('not_out'):
                acc['not_outs'] += 1
            else:
                acc['dismissals'] += 1
        if summary.get('bowled'):
            acc['bowling_innings'] += 1

        result = summary.get('result')
        if result == RESULT_WON:
            acc['wins'] += 1
        elif result == RESULT_LOST:
            acc['losses'] += 1
        elif result == RESULT_TIED:
            acc['ties'] += 1

        runs = to_number(summary.get('runs'))
        acc['highest'] = max(acc['highest'], runs)
        if 50 <= runs < 100:
            acc['fifties'] += 1
        elif runs >= 100:
            acc['hundreds'] += 1

    balls, balls_bowled, wickets = acc['balls'], acc['balls_bowled'], acc['wickets']
    acc['strike_rate'] = round_stat(acc['runs'] / balls * 100) if balls > 0 else 0
    acc['average'] = batting_average(acc['runs'], acc['dismissals'], acc['batting_innings'])
    acc['economy'] = round_stat(acc['runs_conceded'] / (balls_bowled / 6)) if balls_bowled > 0 else 0
    acc['bowling_average'] = bowling_average(acc['runs_conceded'], wickets)
    acc['bowling_strike_rate'] = round_stat(balls_bowled / wickets) if wickets > 0 else 0
    return acc


def normalise_match_id(match_id):
    if isinstance(match_id, str) and match_id.strip().isdigit():
        return int(match_id)
    return match_id


def _summary_match_id(entry):
    if not isinstance(entry, dict):
        return None
    return entry.get('match_id', entry.get('id'))


def update_player_record(player_id, mutate, updated_by: str, max_attempts: int | None = None):
    """Read-modify-write one player row with optimistic retry.

    ``mutate(player)`` is re-run against freshly loaded state on every
    attempt and returns False when there is nothing to write. Returns True
    only when a write was committed.
    """
    if max_attempts is None:
        max_attempts = current_app.config.get('PLAYER_SYNC_MAX_ATTEMPTS', DEFAULT_MAX_ATTEMPTS)

    for attempt in range(1, max_attempts + 1):
        try:
            player = db.session.get(Player, player_id, populate_existing=True)
            if player is None:
                logger.warning('Player %s not found, skipping %s update', player_id, updated_by)
                return False
            if mutate(player) is False:
                db.session.rollback()
                return False
            player.updated_by = updated_by
            player.updated_at = current_time()
            db.session.commit()
            return True
        except StaleDataError:
            db.session.rollback()
            logger.warning(
                'Write conflict on player %s (attempt %s/%s), retrying',
                player_id, attempt, max_attempts,
            )
    raise PlayerWriteConflictError(player_id, max_attempts)


def _write_totals(player, past_matches: list) -> dict:
    totals = aggregate_career_stats(past_matches)
    player.past_matches = past_matches
    player.stats = totals
    player.match_stats = dict(totals)
    return totals


def build_match_summaries(match) -> list[tuple]:
    """Return ``(player_id, summary)`` pairs for both lineups of ``match``."""
    tournament_name = ''
    if match.tournament_id is not None:
        if match.tournament is not None:
            tournament_name = match.tournament.name or ''
        else:
            logger.warning('Tournament %s for match %s not found', match.tournament_id, match.id)

    names = {side: side_name(match, side) for side in ('A', 'B')}
    lineups = {'A': match.team_a_playing_xi, 'B': match.team_b_playing_xi}

    pairs = []
    for side, other in (('A', 'B'), ('B', 'A')):
        squad_id = side_squad_id(match, side)
        lineup = lineups[side] if isinstance(lineups[side], list) else []
        if not squad_id or not lineup:
            continue
        result = get_result_for_squad(match, squad_id)
        context = {
            'match_id': match.id,
            'tournament_name': tournament_name,
            'squad_id': squad_id,
            'opponent_squad_id': side_squad_id(match, other),
            'team_name': names[side],
            'opponent_name': names[other],
            'result': result,
        }
        for entry in lineup:
            if not isinstance(entry, dict):
                continue
            player_id = lineup_value(entry, 'player_id')
            if not player_id:
                continue
            pairs.append((player_id, build_player_match_summary(entry, match, context)))
    return pairs


def sync_player_stats_for_match(match_id) -> int:
    """Upsert this match's summary into every lineup player's career.

    Each player is its own transaction; re-running for the same match
    replaces the existing entry instead of appending. Returns the number of
    player records written.
    """
    match = db.session.get(Match, normalise_match_id(match_id))
    if match is None:
        raise ReferenceNotFoundError('match', match_id)
    match_id = match.id
    if not match.is_finished:
        logger.debug('Match %s is %s, skipping player sync', match_id, match.status)
        return 0

    pairs = build_match_summaries(match)
    updated = 0
    for player_id, summary in pairs:
        def apply(player, summary=summary):
            past_matches = [dict(entry) for entry in (player.past_matches or [])]
            for idx, entry in enumerate(past_matches):
                if _summary_match_id(entry) == match_id:
                    past_matches[idx] = {**entry, **summary}
                    break
            else:
                past_matches.append(summary)
            _write_totals(player, past_matches)
            player.last_match_summary = summary

        if update_player_record(player_id, apply, updated_by='match-sync'):
            updated += 1

    logger.info('Synced match %s stats into %s player record(s)', match_id, updated)
    return updated


def remove_match_stats_from_players(match_id) -> int:
    """Drop ``match_id`` from every player's history and refold their totals."""
    match_id = normalise_match_id(match_id)
    rows = db.session.execute(db.select(Player.id, Player.past_matches)).all()
    affected = [
        player_id
        for player_id, past_matches in rows
        if any(_summary_match_id(entry) == match_id for entry in (past_matches or []))
    ]

    removed = 0
    for player_id in affected:
        def apply(player):
            past_matches = [
                entry for entry in (player.past_matches or [])
                if _summary_match_id(entry) != match_id
            ]
            if len(past_matches) == len(player.past_matches or []):
                return False
            _write_totals(player, past_matches)

        if update_player_record(player_id, apply, updated_by='match-delete'):
            removed += 1

    logger.info('Removed match %s stats from %s player record(s)', match_id, removed)
    return removed
