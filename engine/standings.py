"""Group-stage points tables with net run rate."""

from dataclasses import asdict, dataclass, field
import logging

from engine.errors import ReferenceNotFoundError
from engine.fields import round_stat, side_balls, side_runs
from engine.stages import UNASSIGNED_GROUP, as_int, extract_squad_id
from models import db, FINISHED_STATUSES, Match, Squad, Tournament

logger = logging.getLogger(__name__)

POINTS_WIN = 2
POINTS_TIE = 1


@dataclass
class TeamStanding:
    squad_id: int
    name: str
    group_key: str = UNASSIGNED_GROUP
    group_name: str = ''
    matches: int = 0
    wins: int = 0
    losses: int = 0
    ties: int = 0
    points: int = 0
    runs_for: int = 0
    runs_against: int = 0
    balls_faced: int = 0
    balls_bowled: int = 0
    net_run_rate: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class Qualifier:
    standing: TeamStanding
    position: int
    group_key: str
    group_name: str = ''

    @property
    def squad_id(self):
        return self.standing.squad_id

    @property
    def name(self) -> str:
        return self.standing.name

    def to_dict(self) -> dict:
        data = self.standing.to_dict()
        data.update(position=self.position, group_key=self.group_key, group_name=self.group_name)
        return data


@dataclass
class GroupStandings:
    standings_by_group: dict[str, list[TeamStanding]] = field(default_factory=dict)
    qualifiers: list[Qualifier] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'standings': [
                {'group_key': key, 'rows': [row.to_dict() for row in rows]}
                for key, rows in self.standings_by_group.items()
            ],
            'qualifiers': [qualifier.to_dict() for qualifier in self.qualifiers],
        }


def compute_net_run_rate(runs_for, balls_faced, runs_against, balls_bowled) -> float:
    overs_faced = balls_faced / 6 if balls_faced > 0 else 0
    overs_bowled = balls_bowled / 6 if balls_bowled > 0 else 0
    for_rate = runs_for / overs_faced if overs_faced > 0 else 0
    against_rate = runs_against / overs_bowled if overs_bowled > 0 else 0
    return round_stat(for_rate - against_rate, 3)


def ranking_key(standing: TeamStanding):
    # Points, then NRR, then name. Head-to-head is deliberately not applied.
    return (-standing.points, -standing.net_run_rate, standing.name.casefold(), standing.name, standing.squad_id)


def is_group_match(match) -> bool:
    return not match.stage or match.stage == 'group'


def _group_key(group: dict) -> str:
    return str(group.get('key') or '').upper() or UNASSIGNED_GROUP


def _apply_match(stats: dict, match) -> None:
    team_a = stats.get(match.team_a_squad_id)
    team_b = stats.get(match.team_b_squad_id)
    if team_a is None or team_b is None:
        return

    runs_a, runs_b = side_runs(match, 'A'), side_runs(match, 'B')
    balls_a, balls_b = side_balls(match, 'A'), side_balls(match, 'B')

    team_a.matches += 1
    team_b.matches += 1
    team_a.runs_for += runs_a
    team_a.runs_against += runs_b
    team_a.balls_faced += balls_a
    team_a.balls_bowled += balls_b
    team_b.runs_for += runs_b
    team_b.runs_against += runs_a
    team_b.balls_faced += balls_b
    team_b.balls_bowled += balls_a

    if runs_a > runs_b:
        team_a.wins += 1
        team_a.points += POINTS_WIN
        team_b.losses += 1
    elif runs_b > runs_a:
        team_b.wins += 1
        team_b.points += POINTS_WIN
        team_a.losses += 1
    else:
        team_a.ties += 1
        team_b.ties += 1
        team_a.points += POINTS_TIE
        team_b.points += POINTS_TIE


def build_group_standings(groups, squads, matches, qualifiers_per_group: int = 1) -> GroupStandings:
    """Rank every squad within its group and pick the qualifiers.

    ``groups`` are group definitions (``key``, ``name``, ``qualifiers``,
    ``squads``), ``squads`` the squad rows taking part and ``matches`` the
    tournament's matches; only finished group-stage matches are counted.
    Nothing is read from or written to the database.
    """
    assignments = {}
    for group in groups:
        for entry in group.get('squads') or []:
            squad_id = extract_squad_id(entry)
            if squad_id is not None:
                assignments[squad_id] = (_group_key(group), group.get('name') or f"Group {group.get('key')}")

    stats: dict = {}
    for squad in squads:
        key, name = assignments.get(squad.id, (None, ''))
        if key is None:
            key = (squad.group_key or '').upper() or UNASSIGNED_GROUP
        stats[squad.id] = TeamStanding(squad_id=squad.id, name=squad.display_name, group_key=key, group_name=name)

    for match in matches:
        if match.status not in FINISHED_STATUSES or not is_group_match(match):
            continue
        if not match.team_a_squad_id or not match.team_b_squad_id:
            continue
        _apply_match(stats, match)

    standings_by_group: dict[str, list[TeamStanding]] = {}
    for standing in stats.values():
        standing.net_run_rate = compute_net_run_rate(
            standing.runs_for, standing.balls_faced, standing.runs_against, standing.balls_bowled
        )
        standings_by_group.setdefault(standing.group_key, []).append(standing)
    for rows in standings_by_group.values():
        rows.sort(key=ranking_key)

    qualifiers = []
    for group in groups:
        key = _group_key(group)
        slots = max(1, as_int(group.get('qualifiers'), 0) or as_int(qualifiers_per_group, 0) or 1)
        for position, standing in enumerate(standings_by_group.get(key, [])[:slots], start=1):
            qualifiers.append(Qualifier(
                standing=standing,
                position=position,
                group_key=key,
                group_name=group.get('name') or '',
            ))

    return GroupStandings(standings_by_group=standings_by_group, qualifiers=qualifiers)


def compute_group_standings(tournament_id) -> GroupStandings:
    tournament = db.session.get(Tournament, tournament_id)
    if tournament is None:
        raise ReferenceNotFoundError('tournament', tournament_id)

    group_stage = tournament.group_stage or {}
    groups = group_stage.get('groups') or []

    squads = {squad.id: squad for squad in Squad.query.filter_by(tournament_id=tournament_id).order_by(Squad.id).all()}
    for group in groups:
        for entry in group.get('squads') or []:
            squad_id = extract_squad_id(entry)
            if squad_id is None or squad_id in squads:
                continue
            squad = db.session.get(Squad, squad_id)
            if squad is None:
                logger.warning('Squad %s in group %s of tournament %s not found', squad_id, group.get('key'), tournament_id)
                continue
            squads[squad.id] = squad

    matches = Match.query.filter(
        Match.tournament_id == tournament_id,
        Match.status.in_(FINISHED_STATUSES),
    ).all()

    return build_group_standings(
        groups,
        squads.values(),
        matches,
        qualifiers_per_group=group_stage.get('qualifiers_per_group') or 1,
    )
