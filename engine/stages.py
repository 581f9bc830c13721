"""Stage keys and tournament structure normalisation."""

from engine.errors import InvalidConfigurationError

VALID_STAGES = ('group', 'qualifier', 'eliminator', 'semi_final', 'final', 'third_place')
MAX_GROUPS = 8
MAX_QUALIFIERS_PER_GROUP = 4
UNASSIGNED_GROUP = 'UNASSIGNED'

DEFAULT_KNOCKOUT_STAGES = (
    {'key': 'semi_final', 'name': 'Semi Final', 'matches': 2},
    {'key': 'final', 'name': 'Final', 'matches': 1},
)


def default_stage_label(stage_key: str) -> str:
    if stage_key == 'semi_final':
        return 'Semi Final'
    return stage_key.replace('_', ' ', 1)


def normalise_stage(payload: dict | None) -> dict:
    """Validate a match stage payload and fill in label and bracket fields."""
    if not payload or not payload.get('stage'):
        return {
            'stage': 'group',
            'stage_label': 'Group',
            'bracket_position': '',
            'bracket_order': 0,
        }

    stage_key = str(payload['stage']).lower()
    if stage_key not in VALID_STAGES:
        raise InvalidConfigurationError(
            f"Invalid stage '{payload['stage']}'. Allowed stages: {', '.join(VALID_STAGES)}"
        )

    return {
        'stage': stage_key,
        'stage_label': payload.get('stage_label') or default_stage_label(stage_key),
        'bracket_position': payload.get('bracket_position') or '',
        'bracket_order': as_int(payload.get('bracket_order'), 0),
    }


def extract_squad_id(entry):
    if isinstance(entry, dict):
        entry = entry.get('squad_id') or entry.get('id')
    if entry is None or entry == '':
        return None
    if isinstance(entry, str) and entry.strip().isdigit():
        return int(entry)
    return entry


def as_int(value, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def _group_keys(count: int) -> list[str]:
    alphabet = 'ABCDEFGHIJKLMNOPQRSTUVWXYZ'
    return [alphabet[idx] if idx < len(alphabet) else f'G{idx + 1}' for idx in range(count)]


def normalise_group_stage(raw: dict | None) -> dict:
    raw = raw or {}
    if not raw.get('enabled'):
        return {'enabled': False, 'groups': [], 'qualifiers_per_group': 0}

    existing = raw.get('groups') if isinstance(raw.get('groups'), list) else []
    requested = as_int(raw.get('total_groups') or raw.get('group_count'), len(existing))
    total_groups = _clamp(requested or 1, 1, MAX_GROUPS)
    qualifiers_per_group = _clamp(
        as_int(raw.get('qualifiers_per_group'), 2) or 2, 1, MAX_QUALIFIERS_PER_GROUP
    )

    groups = []
    for idx, key in enumerate(_group_keys(total_groups)):
        source = existing[idx] if idx < len(existing) else None
        if source is None:
            source = next(
                (grp for grp in existing if str(grp.get('key') or grp.get('id') or '').upper() == key),
                {},
            )
        squads = []
        for entry in source.get('squads') or []:
            squad_id = extract_squad_id(entry)
            if squad_id is not None:
                squads.append(squad_id)
        groups.append({
            'key': key,
            'name': source.get('name') or source.get('label') or f'Group {key}',
            'qualifiers': _clamp(
                as_int(source.get('qualifiers'), qualifiers_per_group), 1, MAX_QUALIFIERS_PER_GROUP
            ),
            'squads': squads,
        })

    return {'enabled': True, 'groups': groups, 'qualifiers_per_group': qualifiers_per_group}


def normalise_knockout_stage(raw: dict | None) -> dict:
    raw = raw or {}
    if not raw.get('enabled'):
        return {'enabled': False, 'stages': [], 'auto_seed_from_groups': True}

    given = raw.get('stages') if isinstance(raw.get('stages'), list) else []
    source = given or [dict(stage) for stage in DEFAULT_KNOCKOUT_STAGES]

    stages = []
    for idx, stage in enumerate(source):
        fallback = DEFAULT_KNOCKOUT_STAGES[idx] if idx < len(DEFAULT_KNOCKOUT_STAGES) else {}
        key = str(stage.get('key') or fallback.get('key') or f'stage_{idx + 1}').lower()
        stages.append({
            'key': key,
            'name': stage.get('name') or fallback.get('name') or f'Stage {idx + 1}',
            'matches': max(1, as_int(stage.get('matches') or fallback.get('matches'), 1)),
        })

    return {
        'enabled': True,
        'stages': stages,
        'auto_seed_from_groups': raw.get('auto_seed_from_groups') is not False,
    }
