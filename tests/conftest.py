import pytest

from app import create_app
from engine.career import empty_totals
from models import db, User, Tournament, Squad, Player, Match


@pytest.fixture
def flask_app(tmp_path):
    """Create test application backed by a throwaway SQLite file"""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{tmp_path / 'test.db'}",
        'SECRET_KEY': 'test-secret-key',
        'PLAYER_SYNC_MAX_ATTEMPTS': 3,
    })

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(flask_app):
    """Test client"""
    return flask_app.test_client()


@pytest.fixture
def admin_user(flask_app):
    """Default admin created by the application factory"""
    return User.query.filter_by(username='admin').first()


@pytest.fixture
def authenticated_admin(client, admin_user):
    """Client with an admin session"""
    with client.session_transaction() as sess:
        sess['user_id'] = admin_user.id
        sess['username'] = admin_user.username
        sess['role'] = admin_user.role
    return client


@pytest.fixture
def tournament(flask_app):
    """Two groups of two squads, top two of each group advance to the semi finals"""
    tournament = Tournament(name='Batch Cup', year=2025, status='active')
    db.session.add(tournament)
    db.session.commit()
    return tournament


@pytest.fixture
def squads(flask_app, tournament):
    squads = {
        'alpha': Squad(tournament_id=tournament.id, team_name='Alpha', captain='Rahim', group_key='A'),
        'bravo': Squad(tournament_id=tournament.id, team_name='Bravo', group_key='A'),
        'charlie': Squad(tournament_id=tournament.id, batch='2019', group_key='B'),
        'delta': Squad(tournament_id=tournament.id, team_name='Delta', group_key='B'),
    }
    db.session.add_all(squads.values())
    db.session.commit()

    tournament.group_stage = {
        'enabled': True,
        'qualifiers_per_group': 2,
        'groups': [
            {'key': 'A', 'name': 'Group A', 'qualifiers': 2,
             'squads': [squads['alpha'].id, squads['bravo'].id]},
            {'key': 'B', 'name': 'Group B', 'qualifiers': 2,
             'squads': [squads['charlie'].id, squads['delta'].id]},
        ],
    }
    tournament.knockout_stage = {
        'enabled': True,
        'auto_seed_from_groups': True,
        'stages': [
            {'key': 'semi_final', 'name': 'Semi Final', 'matches': 2},
            {'key': 'final', 'name': 'Final', 'matches': 1},
        ],
    }
    db.session.commit()
    return squads


@pytest.fixture
def players(flask_app, squads):
    def register(name, squad, role='Batter'):
        totals = empty_totals()
        return Player(
            name=name,
            role=role,
            squad_id=squad.id,
            past_matches=[],
            stats=totals,
            match_stats=dict(totals),
        )

    players = {
        'a1': register('Tamim', squads['alpha']),
        'a2': register('Mustafiz', squads['alpha'], role='Bowler'),
        'b1': register('Liton', squads['bravo']),
        'b2': register('Taskin', squads['bravo'], role='Bowler'),
    }
    db.session.add_all(players.values())
    db.session.commit()
    return players


def build_lineup_entry(player, runs=0, balls=0, out=False, fours=0, sixes=0,
                 wickets=0, balls_bowled=0, runs_conceded=0, **extra):
    entry = {
        'player_id': player.id,
        'runs': runs,
        'balls': balls,
        'fours': fours,
        'sixes': sixes,
        'bowling_wickets': wickets,
        'bowling_balls': balls_bowled,
        'bowling_runs': runs_conceded,
        'status': 'out' if out else 'not out',
    }
    entry.update(extra)
    return entry


@pytest.fixture
def make_match(flask_app, tournament):
    """Factory for matches in the test tournament"""
    def factory(team_a, team_b, **fields):
        fields.setdefault('status', 'Finished')
        fields.setdefault('stage', 'group')
        match = Match(
            tournament_id=tournament.id,
            team_a_squad_id=team_a.id,
            team_b_squad_id=team_b.id,
            team_a_name=team_a.display_name,
            team_b_name=team_b.display_name,
            venue=fields.pop('venue', 'Main Ground'),
            date=fields.pop('date', '2025-01-10'),
            **fields,
        )
        db.session.add(match)
        db.session.commit()
        return match

    return factory


@pytest.fixture
def finished_match(make_match, squads, players):
    """Alpha 150/6 beat Bravo 140/9, both innings 20 overs"""
    return make_match(
        squads['alpha'],
        squads['bravo'],
        runs1=150, wickets1=6, balls1=120,
        runs2=140, wickets2=9, balls2=120,
        team_a_playing_xi=[
            build_lineup_entry(players['a1'], runs=64, balls=40, fours=6, sixes=2, out=True),
            build_lineup_entry(players['a2'], runs=0, balls=0, wickets=3, balls_bowled=24, runs_conceded=28),
        ],
        team_b_playing_xi=[
            build_lineup_entry(players['b1'], runs=72, balls=50, out=False),
            build_lineup_entry(players['b2'], runs=0, balls=0, out=True, balls_bowled=24, runs_conceded=41),
        ],
    )


@pytest.fixture
def lineup_entry():
    """Builder for playing XI entries"""
    return build_lineup_entry
