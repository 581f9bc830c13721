import pytest

from engine.errors import ReferenceNotFoundError
from engine.standings import (
    TeamStanding,
    build_group_standings,
    compute_group_standings,
    compute_net_run_rate,
    ranking_key,
)
from models import db, Match, Squad


def _rows(standings, group_key):
    return [row.name for row in standings.standings_by_group[group_key]]


class TestNetRunRate:

    def test_literal_case(self):
        # 150 off 20 overs, 140 conceded off 20 overs
        assert compute_net_run_rate(150, 120, 140, 120) == 0.5

    def test_no_balls_counts_as_zero_rate(self):
        assert compute_net_run_rate(0, 0, 0, 0) == 0
        assert compute_net_run_rate(60, 60, 0, 0) == 6.0
        assert compute_net_run_rate(0, 0, 60, 60) == -6.0

    def test_rounded_to_three_places(self):
        assert compute_net_run_rate(100, 70, 90, 72) == 1.071

    def test_half_rounds_up(self):
        assert compute_net_run_rate(1, 96, 0, 0) == 0.063
        assert compute_net_run_rate(0, 0, 1, 96) == -0.062


class TestRanking:

    def test_points_first(self):
        rows = [
            TeamStanding(squad_id=1, name='Alpha', points=2, net_run_rate=-1.0),
            TeamStanding(squad_id=2, name='Bravo', points=4, net_run_rate=-3.0),
        ]
        assert [row.name for row in sorted(rows, key=ranking_key)] == ['Bravo', 'Alpha']

    def test_equal_points_higher_nrr_first(self):
        rows = [
            TeamStanding(squad_id=1, name='Alpha', points=2, net_run_rate=0.25),
            TeamStanding(squad_id=2, name='Bravo', points=2, net_run_rate=0.5),
        ]
        assert [row.name for row in sorted(rows, key=ranking_key)] == ['Bravo', 'Alpha']

    def test_equal_points_and_nrr_alphabetical(self):
        rows = [
            TeamStanding(squad_id=1, name='bravo', points=2, net_run_rate=0.5),
            TeamStanding(squad_id=2, name='Alpha', points=2, net_run_rate=0.5),
        ]
        assert [row.name for row in sorted(rows, key=ranking_key)] == ['Alpha', 'bravo']

    def test_head_to_head_is_not_a_tie_break(self):
        """Known deviation from common cricket rules: the cascade stops at
        points, net run rate and name. Charlie beat Alpha head to head, yet
        Alpha ranks above it on name once points and NRR are level."""
        groups = [{'key': 'A', 'name': 'Group A', 'qualifiers': 1, 'squads': [1, 2, 3]}]
        squads = [Squad(id=1, team_name='Alpha'), Squad(id=2, team_name='Bravo'),
                  Squad(id=3, team_name='Charlie')]
        matches = [
            # Charlie beats Alpha by 10, Alpha beats Bravo by 10, Bravo beats Charlie by 10
            Match(team_a_squad_id=3, team_b_squad_id=1, status='Finished', stage='group',
                  runs1=110, balls1=120, runs2=100, balls2=120),
            Match(team_a_squad_id=1, team_b_squad_id=2, status='Finished', stage='group',
                  runs1=110, balls1=120, runs2=100, balls2=120),
            Match(team_a_squad_id=2, team_b_squad_id=3, status='Finished', stage='group',
                  runs1=110, balls1=120, runs2=100, balls2=120),
        ]

        standings = build_group_standings(groups, squads, matches)

        assert _rows(standings, 'A') == ['Alpha', 'Bravo', 'Charlie']
        assert [row.points for row in standings.standings_by_group['A']] == [2, 2, 2]
        assert [row.net_run_rate for row in standings.standings_by_group['A']] == [0, 0, 0]
        assert [q.name for q in standings.qualifiers] == ['Alpha']


class TestBuildGroupStandings:
    """Points table built from match rows only"""

    def test_win_and_tie_points(self):
        groups = [{'key': 'a', 'name': 'Group A', 'squads': [1, 2, {'id': 3}]}]
        squads = [Squad(id=1, team_name='Alpha'), Squad(id=2, team_name='Bravo'),
                  Squad(id=3, team_name='Charlie')]
        matches = [
            Match(team_a_squad_id=1, team_b_squad_id=2, status='Completed', stage='group',
                  runs1=150, balls1=120, runs2=140, balls2=120),
            Match(team_a_squad_id=2, team_b_squad_id=3, status='Finished',
                  score={'teamA': {'runs': 120, 'overs': '20.0'}, 'teamB': {'runs': 120, 'overs': '18.0'}}),
        ]

        standings = build_group_standings(groups, squads, matches, qualifiers_per_group=2)
        rows = {row.name: row for row in standings.standings_by_group['A']}

        assert (rows['Alpha'].wins, rows['Alpha'].points) == (1, 2)
        assert rows['Alpha'].net_run_rate == 0.5
        assert (rows['Bravo'].losses, rows['Bravo'].ties, rows['Bravo'].points) == (1, 1, 1)
        assert (rows['Charlie'].ties, rows['Charlie'].points) == (1, 1)
        assert rows['Charlie'].balls_faced == 108
        assert rows['Charlie'].balls_bowled == 120
        assert [q.name for q in standings.qualifiers] == ['Alpha', 'Charlie']
        assert [q.position for q in standings.qualifiers] == [1, 2]

    def test_unfinished_and_knockout_matches_ignored(self):
        groups = [{'key': 'A', 'squads': [1, 2]}]
        squads = [Squad(id=1, team_name='Alpha'), Squad(id=2, team_name='Bravo')]
        matches = [
            Match(team_a_squad_id=1, team_b_squad_id=2, status='Live', stage='group', runs1=50, runs2=10),
            Match(team_a_squad_id=1, team_b_squad_id=2, status='Finished', stage='semi_final',
                  runs1=50, runs2=10),
        ]

        standings = build_group_standings(groups, squads, matches)
        assert all(row.matches == 0 for row in standings.standings_by_group['A'])

    def test_unassigned_squads_use_their_group_key(self):
        squads = [Squad(id=1, team_name='Alpha', group_key='b'), Squad(id=2, team_name='Bravo')]
        standings = build_group_standings([], squads, [])
        assert _rows(standings, 'B') == ['Alpha']
        assert _rows(standings, 'UNASSIGNED') == ['Bravo']
        assert standings.qualifiers == []

    def test_qualifier_count_from_strings(self):
        squads = [Squad(id=1, team_name='Alpha'), Squad(id=2, team_name='Bravo'),
                  Squad(id=3, team_name='Charlie')]
        groups = [{'key': 'A', 'qualifiers': '2', 'squads': [1, 2, 3]}]
        standings = build_group_standings(groups, squads, [], qualifiers_per_group=1)
        assert len(standings.qualifiers) == 2

        groups[0]['qualifiers'] = 'abc'
        standings = build_group_standings(groups, squads, [], qualifiers_per_group='3')
        assert len(standings.qualifiers) == 3


class TestComputeGroupStandings:

    def test_two_group_tournament(self, tournament, squads, make_match):
        make_match(squads['alpha'], squads['bravo'], runs1=150, balls1=120, runs2=140, balls2=120)
        make_match(squads['delta'], squads['charlie'], runs1=130, overs1='20.0', runs2=131, overs2='19.2')

        standings = compute_group_standings(tournament.id)

        assert _rows(standings, 'A') == ['Alpha', 'Bravo']
        assert _rows(standings, 'B') == ['Batch 2019', 'Delta']
        assert [q.name for q in standings.qualifiers] == ['Alpha', 'Bravo', 'Batch 2019', 'Delta']
        assert [q.group_key for q in standings.qualifiers] == ['A', 'A', 'B', 'B']

        payload = standings.to_dict()
        assert payload['standings'][0]['group_key'] == 'A'
        assert payload['standings'][0]['rows'][0]['net_run_rate'] == 0.5
        assert payload['qualifiers'][0]['position'] == 1

    def test_missing_squad_in_group_is_skipped(self, tournament, squads):
        group_stage = dict(tournament.group_stage)
        group_stage['groups'] = [dict(group) for group in group_stage['groups']]
        group_stage['groups'][0]['squads'] = group_stage['groups'][0]['squads'] + [4242]
        tournament.group_stage = group_stage
        db.session.commit()

        standings = compute_group_standings(tournament.id)
        assert _rows(standings, 'A') == ['Alpha', 'Bravo']

    def test_missing_tournament(self, flask_app):
        with pytest.raises(ReferenceNotFoundError):
            compute_group_standings(404)
