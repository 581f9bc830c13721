from datetime import datetime
import math
import os
import re

import pytz
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import validates
from sqlalchemy.types import TypeDecorator
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

APP_TIMEZONE = pytz.timezone(os.environ.get('APP_TIMEZONE', 'Asia/Dhaka'))

MATCH_STATUSES = ('Upcoming', 'Live', 'Completed', 'Finished')
FINISHED_STATUSES = ('Completed', 'Finished')
TOURNAMENT_STATUSES = ('upcoming', 'active', 'completed')

INFINITY_MARKER = 'Infinity'


def current_time():
    return datetime.now(APP_TIMEZONE)


class CareerTotalsJSON(TypeDecorator):
    """Flat JSON object whose infinite floats are stored as ``"Infinity"``.

    Strict JSON backends reject the bare ``Infinity`` token, and an undefined
    bowling average is stored as ``math.inf``.
    """

    impl = db.JSON
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if not isinstance(value, dict):
            return value
        return {
            key: INFINITY_MARKER if isinstance(item, float) and math.isinf(item) and item > 0 else item
            for key, item in value.items()
        }

    def process_result_value(self, value, dialect):
        if not isinstance(value, dict):
            return value
        return {key: math.inf if item == INFINITY_MARKER else item for key, item in value.items()}


class User(db.Model):
    """Administrators allowed to drive match results and seeding."""

    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='admin')  # 'admin' or 'scorer'
    created_at = db.Column(db.DateTime, default=current_time)

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<User {self.id} {self.username} role={self.role}>"

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == 'admin'

    @staticmethod
    def validate_format(username: str, email: str, password: str) -> list[str]:
        """Validate account data format without using the database."""
        errors: list[str] = []

        if not username or len(username.strip()) < 3:
            errors.append("Username must be at least 3 characters")

        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not email or not re.match(email_pattern, email):
            errors.append("Valid email required")

        if not password or len(password) < 8:
            errors.append("Password must be at least 8 characters")

        return errors


class Tournament(db.Model):
    __tablename__ = 'tournament'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    year = db.Column(db.Integer)
    status = db.Column(db.String(20), default='upcoming')  # upcoming, active, completed
    group_stage = db.Column(db.JSON, default=dict)
    knockout_stage = db.Column(db.JSON, default=dict)
    created_at = db.Column(db.DateTime, default=current_time)
    updated_at = db.Column(db.DateTime, default=current_time, onupdate=current_time)

    squads = db.relationship('Squad', backref='tournament', lazy=True)
    matches = db.relationship('Match', backref='tournament', lazy=True, cascade='all, delete-orphan')

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Tournament {self.id} {self.name}>"

    @validates('status')
    def validate_status(self, key, value):
        if value not in TOURNAMENT_STATUSES:
            raise ValueError(f'Unsupported tournament status: {value}')
        return value

    @property
    def display_title(self) -> str:
        if self.year:
            return f"{self.name} {self.year}"
        return self.name

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'year': self.year,
            'status': self.status,
            'group_stage': self.group_stage or {},
            'knockout_stage': self.knockout_stage or {},
        }


class Squad(db.Model):
    __tablename__ = 'squad'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournament.id'))
    team_name = db.Column(db.String(100))
    batch = db.Column(db.String(20))
    captain = db.Column(db.String(100))
    vice_captain = db.Column(db.String(100))
    logo = db.Column(db.String(255))
    group_key = db.Column(db.String(10))
    created_at = db.Column(db.DateTime, default=current_time)

    players = db.relationship('Player', backref='squad', lazy=True)

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Squad {self.id} {self.display_name}>"

    @property
    def display_name(self) -> str:
        if self.team_name:
            return self.team_name
        if self.batch:
            return f"Batch {self.batch}"
        return f"Squad {self.id}"


class Player(db.Model):
    """Player profile and career record.

    ``past_matches`` holds one summary per match id and ``stats`` the totals
    folded from it. ``version_id`` makes every flush of a player row an
    optimistic compare-and-set, so concurrent read-modify-write cycles on the
    same player surface as ``StaleDataError`` instead of lost updates.
    """

    __tablename__ = 'player'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.String(40))
    squad_id = db.Column(db.Integer, db.ForeignKey('squad.id'))
    past_matches = db.Column(db.JSON, default=list)
    stats = db.Column(CareerTotalsJSON, default=dict)
    match_stats = db.Column(CareerTotalsJSON, default=dict)
    last_match_summary = db.Column(db.JSON)
    updated_by = db.Column(db.String(40))
    created_at = db.Column(db.DateTime, default=current_time)
    updated_at = db.Column(db.DateTime, default=current_time)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {'version_id_col': version_id}

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Player {self.id} {self.name}>"

    def match_ids(self) -> set:
        return {
            entry.get('match_id', entry.get('id'))
            for entry in (self.past_matches or [])
            if isinstance(entry, dict)
        }


class Match(db.Model):
    __tablename__ = 'match'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournament.id'), nullable=False)
    team_a_squad_id = db.Column(db.Integer, db.ForeignKey('squad.id'))
    team_b_squad_id = db.Column(db.Integer, db.ForeignKey('squad.id'))
    team_a_name = db.Column(db.String(100))
    team_b_name = db.Column(db.String(100))
    stage = db.Column(db.String(20), default='group')
    stage_label = db.Column(db.String(50))
    bracket_position = db.Column(db.String(40))
    bracket_order = db.Column(db.Integer, default=0)
    is_final = db.Column(db.Boolean, default=False)
    status = db.Column(db.String(20), default='Upcoming')
    runs1 = db.Column(db.Integer)
    runs2 = db.Column(db.Integer)
    wickets1 = db.Column(db.Integer)
    wickets2 = db.Column(db.Integer)
    balls1 = db.Column(db.Integer)
    balls2 = db.Column(db.Integer)
    overs1 = db.Column(db.String(10))
    overs2 = db.Column(db.String(10))
    score = db.Column(db.JSON)
    team_a_playing_xi = db.Column(db.JSON, default=list)
    team_b_playing_xi = db.Column(db.JSON, default=list)
    winner_squad_id = db.Column(db.Integer)
    loser_squad_id = db.Column(db.Integer)
    champion_recorded = db.Column(db.Boolean, default=False)
    result_summary = db.Column(db.String(255))
    manually_ended = db.Column(db.Boolean, default=False)
    ended_at = db.Column(db.DateTime)
    date = db.Column(db.String(20))
    time = db.Column(db.String(10))
    venue = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=current_time)
    updated_at = db.Column(db.DateTime, default=current_time)

    team_a_squad = db.relationship('Squad', foreign_keys=[team_a_squad_id])
    team_b_squad = db.relationship('Squad', foreign_keys=[team_b_squad_id])

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Match {self.id} {self.stage} {self.status}>"

    @validates('status')
    def validate_status(self, key, value):
        if value not in MATCH_STATUSES:
            raise ValueError(f"Invalid status. Must be one of: {', '.join(MATCH_STATUSES)}")
        return value

    @property
    def is_finished(self) -> bool:
        return self.status in FINISHED_STATUSES

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'tournament_id': self.tournament_id,
            'team_a_squad_id': self.team_a_squad_id,
            'team_b_squad_id': self.team_b_squad_id,
            'team_a_name': self.team_a_name,
            'team_b_name': self.team_b_name,
            'stage': self.stage,
            'stage_label': self.stage_label,
            'bracket_position': self.bracket_position,
            'bracket_order': self.bracket_order,
            'is_final': bool(self.is_final),
            'status': self.status,
            'runs1': self.runs1,
            'runs2': self.runs2,
            'wickets1': self.wickets1,
            'wickets2': self.wickets2,
            'overs1': self.overs1,
            'overs2': self.overs2,
            'winner_squad_id': self.winner_squad_id,
            'loser_squad_id': self.loser_squad_id,
            'champion_recorded': bool(self.champion_recorded),
            'result_summary': self.result_summary,
            'date': self.date,
            'time': self.time,
            'venue': self.venue,
        }


class Champion(db.Model):
    """Final outcome of a tournament; at most one row per tournament."""

    __tablename__ = 'champion'

    id = db.Column(db.Integer, primary_key=True)
    tournament_id = db.Column(db.Integer, db.ForeignKey('tournament.id'), nullable=False, unique=True)
    tournament_name = db.Column(db.String(100))
    year = db.Column(db.Integer)
    squad_id = db.Column(db.Integer)
    team_name = db.Column(db.String(100))
    captain = db.Column(db.String(100))
    vice_captain = db.Column(db.String(100))
    runner_up_id = db.Column(db.Integer)
    runner_up_name = db.Column(db.String(100))
    final_match_id = db.Column(db.Integer)
    result_summary = db.Column(db.String(255))
    final_match_summary = db.Column(db.Text)
    venue = db.Column(db.String(100))
    date = db.Column(db.String(20))
    time = db.Column(db.String(10))
    key_players = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=current_time)

    def __repr__(self):  # pragma: no cover - debug helper
        return f"<Champion tournament={self.tournament_id} squad={self.squad_id}>"

    def to_dict(self) -> dict:
        return {
            'tournament_id': self.tournament_id,
            'tournament_name': self.tournament_name,
            'year': self.year,
            'squad_id': self.squad_id,
            'team_name': self.team_name,
            'captain': self.captain,
            'vice_captain': self.vice_captain,
            'runner_up_id': self.runner_up_id,
            'runner_up_name': self.runner_up_name,
            'final_match_id': self.final_match_id,
            'result_summary': self.result_summary,
            'final_match_summary': self.final_match_summary,
            'venue': self.venue,
            'date': self.date,
            'time': self.time,
            'key_players': self.key_players or [],
        }


def init_default_data():
    """Create the default admin account if it is missing."""

    admin = User.query.filter_by(username='admin').first()
    if not admin:
        admin = User(
            username='admin',
            email='admin@batchcrick.local',
            role='admin',
        )
        admin.set_password(os.environ.get('ADMIN_PASSWORD', 'admin123'))
        db.session.add(admin)

    db.session.commit()
