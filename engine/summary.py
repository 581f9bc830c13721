"""Per-player match summaries built from a finished match lineup entry."""

from engine.fields import (
    balls_to_overs,
    lineup_value,
    round_stat,
    side_runs,
    to_number,
)

RESULT_WON = 'Won'
RESULT_LOST = 'Lost'
RESULT_TIED = 'Tied'


def get_result_for_squad(match, squad_id) -> str:
    """Result of ``match`` from the point of view of ``squad_id``.

    Explicit winner/loser ids win over the scoreboard; without them the side
    with more runs won and equal runs are a tie. A squad that did not play
    in the match is reported as tied.
    """
    if not squad_id:
        return RESULT_TIED

    winner = getattr(match, 'winner_squad_id', None)
    if winner:
        if winner == squad_id:
            return RESULT_WON
        if getattr(match, 'loser_squad_id', None) == squad_id:
            return RESULT_LOST
        return RESULT_TIED

    runs_a = side_runs(match, 'A')
    runs_b = side_runs(match, 'B')
    if runs_a == runs_b:
        return RESULT_TIED
    if squad_id == getattr(match, 'team_a_squad_id', None):
        return RESULT_WON if runs_a > runs_b else RESULT_LOST
    if squad_id == getattr(match, 'team_b_squad_id', None):
        return RESULT_WON if runs_b > runs_a else RESULT_LOST
    return RESULT_TIED


def build_player_match_summary(entry: dict, match, context: dict) -> dict:
    """Build the summary stored in a player's ``past_matches`` for one match.

    ``context`` carries what the lineup entry does not know about itself:
    ``match_id``, ``tournament_name``, ``squad_id``, ``opponent_squad_id``,
    ``team_name``, ``opponent_name`` and ``result``. The output depends only
    on the arguments.
    """
    entry = entry or {}
    runs = to_number(lineup_value(entry, 'runs'))
    balls = to_number(lineup_value(entry, 'balls'))
    fours = to_number(lineup_value(entry, 'fours'))
    sixes = to_number(lineup_value(entry, 'sixes'))
    wickets = to_number(lineup_value(entry, 'bowling_wickets'))
    balls_bowled = to_number(lineup_value(entry, 'bowling_balls'))
    runs_conceded = to_number(lineup_value(entry, 'bowling_runs'))

    strike_rate = round_stat(runs / balls * 100) if balls > 0 else 0
    economy = round_stat(runs_conceded / (balls_bowled / 6)) if balls_bowled > 0 else 0
    bowling_strike_rate = round_stat(balls_bowled / wickets) if wickets > 0 else 0

    # A run out without facing a ball still counts as an innings.
    dismissed = str(lineup_value(entry, 'status', '')).lower() == 'out'
    batted = balls > 0 or dismissed
    bowled = balls_bowled > 0

    return {
        'match_id': context.get('match_id'),
        'tournament_id': getattr(match, 'tournament_id', None),
        'tournament_name': context.get('tournament_name') or '',
        'date': getattr(match, 'date', None) or '',
        'time': getattr(match, 'time', None) or '',
        'venue': getattr(match, 'venue', None) or '',
        'team_name': context.get('team_name') or '',
        'opponent_name': context.get('opponent_name') or '',
        'squad_id': context.get('squad_id'),
        'opponent_squad_id': context.get('opponent_squad_id'),
        'result': context.get('result') or RESULT_TIED,
        'result_summary': getattr(match, 'result_summary', None) or '',
        'played': True,
        'batted': batted,
        'bowled': bowled,
        'not_out': batted and not dismissed,
        'runs': runs,
        'balls': balls,
        'fours': fours,
        'sixes': sixes,
        'strike_rate': strike_rate,
        'wickets': wickets,
        'balls_bowled': balls_bowled,
        'overs_bowled': balls_to_overs(balls_bowled),
        'economy': economy,
        'bowling_strike_rate': bowling_strike_rate,
        'runs_conceded': runs_conceded,
        'dismissal_text': lineup_value(entry, 'dismissal_text', ''),
        'batting_position': lineup_value(entry, 'batting_position'),
        'captain': bool(lineup_value(entry, 'is_captain', False)),
        'keeper': bool(lineup_value(entry, 'is_keeper', False)),
    }
