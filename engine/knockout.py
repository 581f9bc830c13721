"""Seeding the first knockout round from group-stage qualifiers."""

from dataclasses import dataclass
import logging

from engine.errors import (
    InsufficientQualifiersError,
    InvalidConfigurationError,
    ReferenceNotFoundError,
)
from engine.stages import VALID_STAGES
from engine.standings import GroupStandings, Qualifier, compute_group_standings
from models import db, current_time, Match, Tournament

logger = logging.getLogger(__name__)


@dataclass
class Pairing:
    match_order: int
    team_a: Qualifier
    team_b: Qualifier
    match_id: int | None = None

    def to_dict(self) -> dict:
        return {
            'match_order': self.match_order,
            'match_id': self.match_id,
            'team_a': self.team_a.to_dict(),
            'team_b': self.team_b.to_dict(),
        }


def build_pairings(qualifiers: list[Qualifier], required_matches: int) -> list[Pairing]:
    """Pair seeds consecutively: 1 v 2, 3 v 4, ... regardless of group."""
    needed = required_matches * 2
    if len(qualifiers) < needed:
        raise InsufficientQualifiersError(len(qualifiers), needed)

    seeds = qualifiers[:needed]
    return [
        Pairing(match_order=idx, team_a=seeds[idx * 2], team_b=seeds[idx * 2 + 1])
        for idx in range(required_matches)
    ]


def first_knockout_stage(tournament: Tournament) -> dict:
    """Validate the tournament's structure and return its opening knockout stage."""
    group_stage = tournament.group_stage or {}
    knockout_stage = tournament.knockout_stage or {}

    if not group_stage.get('enabled'):
        raise InvalidConfigurationError('Group stage is not enabled for this tournament')
    if not knockout_stage.get('enabled'):
        raise InvalidConfigurationError('Knockout stage is not enabled for this tournament')
    if knockout_stage.get('auto_seed_from_groups') is False:
        raise InvalidConfigurationError('Auto seeding is disabled. Please seed manually.')

    stages = knockout_stage.get('stages') or []
    if not stages:
        raise InvalidConfigurationError('Knockout stage configuration missing stage definitions')

    stage = stages[0]
    key = str(stage.get('key') or '').lower()
    if key not in VALID_STAGES or key == 'group':
        raise InvalidConfigurationError(f"Invalid knockout stage '{stage.get('key')}'")

    try:
        matches = max(1, int(stage.get('matches') or 1))
    except (TypeError, ValueError):
        raise InvalidConfigurationError(f"Invalid match count for stage '{key}'")

    return {'key': key, 'name': stage.get('name') or key, 'matches': matches}


def _fixture_payload(tournament: Tournament, stage: dict, pairing: Pairing) -> dict:
    return {
        'tournament_id': tournament.id,
        'date': '',
        'time': '',
        'venue': 'TBD',
        'status': 'Upcoming',
        'team_a_squad_id': pairing.team_a.squad_id,
        'team_b_squad_id': pairing.team_b.squad_id,
        'team_a_name': pairing.team_a.name,
        'team_b_name': pairing.team_b.name,
        'runs1': 0,
        'runs2': 0,
        'wickets1': 0,
        'wickets2': 0,
        'balls1': 0,
        'balls2': 0,
        'overs1': '0.0',
        'overs2': '0.0',
        'score': None,
        'team_a_playing_xi': [],
        'team_b_playing_xi': [],
        'stage': stage['key'],
        'stage_label': stage['name'],
        'bracket_position': f"match_{pairing.match_order + 1}",
        'bracket_order': pairing.match_order,
        'is_final': stage['key'] == 'final',
        'winner_squad_id': None,
        'loser_squad_id': None,
        'champion_recorded': False,
        'result_summary': None,
        'manually_ended': False,
        'ended_at': None,
        'updated_at': current_time(),
    }


def reconcile_fixtures(tournament: Tournament, stage: dict, pairings: list[Pairing]) -> list[Match]:
    """Make the stage's fixtures match ``pairings`` in a single commit.

    Existing fixtures are reused slot by slot in creation order and keep
    their ``created_at``; missing slots are created and surplus fixtures
    deleted. Any failure rolls the whole set back.
    """
    existing = (
        Match.query.filter_by(tournament_id=tournament.id, stage=stage['key'])
        .order_by(Match.created_at, Match.id)
        .all()
    )

    fixtures = []
    try:
        for idx, pairing in enumerate(pairings):
            payload = _fixture_payload(tournament, stage, pairing)
            if idx < len(existing):
                fixture = existing[idx]
                for attr, value in payload.items():
                    setattr(fixture, attr, value)
            else:
                fixture = Match(**payload)
                db.session.add(fixture)
            fixtures.append(fixture)

        for surplus in existing[len(pairings):]:
            db.session.delete(surplus)

        db.session.flush()
        for pairing, fixture in zip(pairings, fixtures):
            pairing.match_id = fixture.id
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    return fixtures


def seed_knockout_stage(tournament_id, standings: GroupStandings | None = None) -> list[Pairing]:
    tournament = db.session.get(Tournament, tournament_id)
    if tournament is None:
        raise ReferenceNotFoundError('tournament', tournament_id)

    stage = first_knockout_stage(tournament)
    if standings is None:
        standings = compute_group_standings(tournament_id)
    if not standings.qualifiers:
        raise InvalidConfigurationError('No group results available yet.')

    pairings = build_pairings(standings.qualifiers, stage['matches'])
    reconcile_fixtures(tournament, stage, pairings)

    logger.info(
        'Seeded %s %s fixture(s) for tournament %s',
        len(pairings), stage['key'], tournament_id,
    )
    return pairings
