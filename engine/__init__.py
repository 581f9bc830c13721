"""Statistics and progression pipeline.

Pipeline A runs when a match finishes: player summaries are folded into
career totals and, for a decided final, the champion is recorded.
Pipeline B runs on demand: group standings are ranked and the first
knockout round is seeded from them.
"""

from engine.career import (
    aggregate_career_stats,
    remove_match_stats_from_players,
    sync_player_stats_for_match,
)
from engine.champion import record_champion_if_needed
from engine.errors import (
    EngineError,
    InsufficientQualifiersError,
    InvalidConfigurationError,
    PlayerWriteConflictError,
    ReferenceNotFoundError,
)
from engine.knockout import seed_knockout_stage
from engine.standings import compute_group_standings
from engine.summary import build_player_match_summary

__all__ = [
    'aggregate_career_stats',
    'build_player_match_summary',
    'compute_group_standings',
    'record_champion_if_needed',
    'remove_match_stats_from_players',
    'seed_knockout_stage',
    'sync_player_stats_for_match',
    'EngineError',
    'InsufficientQualifiersError',
    'InvalidConfigurationError',
    'PlayerWriteConflictError',
    'ReferenceNotFoundError',
]
