"""Numeric coercion and field resolvers for finished-match data.

Match rows written by older scoring clients may carry a side's score in the
dedicated columns (``runs1``, ``balls1``, ``overs1`` ...) or only inside the
legacy ``score`` payload::

    {"teamA": {"runs": 150, "balls": 120, "overs": "20.0", "wickets": 6},
     "teamB": {...}}

Lineup entries likewise arrive with snake_case or camelCase keys. Every
lookup goes through the resolvers below so the fallback order lives in one
place: dedicated column first, then the ``score`` payload, then a parsed
overs string (balls only), then zero.
"""

import math

SIDE_COLUMNS = {
    'A': {'runs': 'runs1', 'wickets': 'wickets1', 'balls': 'balls1', 'overs': 'overs1',
          'name': 'team_a_name', 'squad_id': 'team_a_squad_id', 'score_key': 'teamA'},
    'B': {'runs': 'runs2', 'wickets': 'wickets2', 'balls': 'balls2', 'overs': 'overs2',
          'name': 'team_b_name', 'squad_id': 'team_b_squad_id', 'score_key': 'teamB'},
}

LINEUP_ALIASES = {
    'player_id': ('player_id', 'playerId'),
    'runs': ('runs',),
    'balls': ('balls',),
    'fours': ('fours',),
    'sixes': ('sixes',),
    'bowling_wickets': ('bowling_wickets', 'bowlingWickets'),
    'bowling_balls': ('bowling_balls', 'bowlingBalls'),
    'bowling_runs': ('bowling_runs', 'bowlingRuns'),
    'status': ('status',),
    'dismissal_text': ('dismissal_text', 'dismissalText'),
    'batting_position': ('batting_position', 'battingPosition'),
    'is_captain': ('is_captain', 'isCaptain'),
    'is_keeper': ('is_keeper', 'isKeeper'),
}


def to_number(value, fallback=0):
    """Coerce ``value`` to a finite number, returning ``fallback`` otherwise."""
    if value is None or isinstance(value, bool):
        return fallback
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(parsed):
        return fallback
    if parsed.is_integer():
        return int(parsed)
    return parsed


def round_stat(value, digits: int = 2):
    """Round halves towards positive infinity: 0.125 -> 0.13, -0.125 -> -0.12."""
    if value is None or not math.isfinite(value):
        return 0
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def overs_to_balls(overs) -> int:
    """``"14.3"`` -> 87. Malformed values count as zero balls."""
    if overs is None:
        return 0
    text = str(overs).strip()
    if not text:
        return 0
    overs_part, _, balls_part = text.partition('.')
    try:
        whole = int(overs_part or 0)
        extra = int(balls_part or 0)
    except ValueError:
        return 0
    if whole < 0 or extra < 0:
        return 0
    return whole * 6 + extra


def balls_to_overs(balls) -> str:
    total = int(to_number(balls))
    return f"{total // 6}.{total % 6}"


def first_present(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _score_entry(match, side: str) -> dict:
    score = getattr(match, 'score', None) or {}
    if not isinstance(score, dict):
        return {}
    entry = score.get(SIDE_COLUMNS[side]['score_key'])
    return entry if isinstance(entry, dict) else {}


def side_runs(match, side: str):
    columns = SIDE_COLUMNS[side]
    return to_number(first_present(getattr(match, columns['runs'], None), _score_entry(match, side).get('runs')))


def side_wickets(match, side: str):
    columns = SIDE_COLUMNS[side]
    return to_number(first_present(getattr(match, columns['wickets'], None), _score_entry(match, side).get('wickets')))


def side_balls(match, side: str) -> int:
    columns = SIDE_COLUMNS[side]
    entry = _score_entry(match, side)
    raw = first_present(getattr(match, columns['balls'], None), entry.get('balls'))
    if raw is not None:
        return int(to_number(raw))
    overs = getattr(match, columns['overs'], None) or entry.get('overs') or '0.0'
    return overs_to_balls(overs)


def side_squad_id(match, side: str):
    return getattr(match, SIDE_COLUMNS[side]['squad_id'], None)


def side_name(match, side: str) -> str:
    stored = getattr(match, SIDE_COLUMNS[side]['name'], None)
    if stored:
        return stored
    squad = getattr(match, 'team_a_squad' if side == 'A' else 'team_b_squad', None)
    if squad is not None:
        return squad.display_name
    return f"Team {side}"


def lineup_value(entry: dict, field: str, default=None):
    for key in LINEUP_ALIASES.get(field, (field,)):
        if key in entry and entry[key] is not None:
            return entry[key]
    return default
