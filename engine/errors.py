"""Exceptions raised by the statistics and progression pipeline."""


class EngineError(Exception):
    """Base class for pipeline failures surfaced to callers."""


class InvalidConfigurationError(EngineError, ValueError):
    """Tournament or match configuration does not allow the operation.

    Raised before any write is issued, so callers never see partial changes.
    """


class InsufficientQualifiersError(InvalidConfigurationError):
    def __init__(self, available: int, required: int):
        self.available = available
        self.required = required
        super().__init__(
            f'Not enough qualified teams to seed knockout stage '
            f'({available} available, {required} required)'
        )


class ReferenceNotFoundError(EngineError, LookupError):
    def __init__(self, kind: str, ref):
        self.kind = kind
        self.ref = ref
        super().__init__(f'{kind.capitalize()} not found: {ref}')


class PlayerWriteConflictError(EngineError):
    """Concurrent writers kept winning the race for one player record."""

    def __init__(self, player_id, attempts: int):
        self.player_id = player_id
        self.attempts = attempts
        super().__init__(
            f'Player {player_id} could not be updated after {attempts} attempts'
        )
