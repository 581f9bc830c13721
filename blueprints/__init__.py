"""
Blueprints package for the BatchCrick statistics service
Contains JSON route blueprints for matches, tournaments and players
"""

from .auth import auth_bp
from .matches import matches_bp
from .players import players_bp
from .tournaments import tournaments_bp

__all__ = ['auth_bp', 'matches_bp', 'players_bp', 'tournaments_bp']
