import logging
import os

from flask import Flask, jsonify

from models import db, User, init_default_data
from engine.errors import (
    InvalidConfigurationError,
    PlayerWriteConflictError,
    ReferenceNotFoundError,
)
from blueprints.auth import auth_bp, load_current_user
from blueprints.matches import matches_bp
from blueprints.players import players_bp
from blueprints.tournaments import tournaments_bp

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _database_uri() -> str:
    # Database configuration - supports both local SQLite and remote PostgreSQL
    database_url = os.environ.get('DATABASE_URL')
    if database_url:
        # Heroku PostgreSQL URL fix (postgres:// → postgresql://)
        if database_url.startswith('postgres://'):
            database_url = database_url.replace('postgres://', 'postgresql://', 1)
        return database_url

    default_sqlite_dir = os.path.join(BASE_DIR, 'instance')
    os.makedirs(default_sqlite_dir, exist_ok=True)
    sqlite_path = os.environ.get('SQLITE_PATH', os.path.join(default_sqlite_dir, 'batchcrick.db'))
    return f'sqlite:///{sqlite_path}'


def configure_logging(level_name: str) -> None:
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )
    logging.getLogger().setLevel(level)


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'batchcrick')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['LOG_LEVEL'] = os.environ.get('LOG_LEVEL', 'INFO')
    app.config['PLAYER_SYNC_MAX_ATTEMPTS'] = int(os.environ.get('PLAYER_SYNC_MAX_ATTEMPTS', 5))
    app.config['KEY_PLAYER_LIMIT'] = int(os.environ.get('KEY_PLAYER_LIMIT', 5))

    if test_config:
        app.config.update(test_config)
    if 'SQLALCHEMY_DATABASE_URI' not in app.config:
        app.config['SQLALCHEMY_DATABASE_URI'] = _database_uri()
    if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        app.config.setdefault('SQLALCHEMY_ENGINE_OPTIONS', {
            'pool_pre_ping': True,
            'pool_recycle': 300,
        })

    configure_logging(app.config['LOG_LEVEL'])
    db.init_app(app)

    with app.app_context():
        db.create_all()
        if not User.query.filter_by(username='admin').first():
            init_default_data()

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(matches_bp)
    app.register_blueprint(tournaments_bp)
    app.register_blueprint(players_bp)

    @app.before_request
    def before_request():
        """Load current user before every request to ANY route"""
        load_current_user()

    @app.errorhandler(ReferenceNotFoundError)
    def handle_not_found(error):
        return jsonify({'success': False, 'error': str(error)}), 404

    @app.errorhandler(InvalidConfigurationError)
    def handle_invalid_configuration(error):
        return jsonify({'success': False, 'error': str(error)}), 400

    @app.errorhandler(PlayerWriteConflictError)
    def handle_write_conflict(error):
        app.logger.error('Giving up on player update: %s', error)
        return jsonify({'success': False, 'error': 'Player statistics are busy, please retry'}), 503

    @app.route('/health')
    def health_check():
        return jsonify({'status': 'ok'})

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5000)
