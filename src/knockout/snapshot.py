"""
Plain-data encoding of tournament snapshots for saving and restoring.

The encoding is structurally complete: round variants, bye/top/final linkage,
winners, history, cursor and round index all survive a round trip. Entrants
are written inline wherever they appear; on decode a single Entrant object is
shared per id, as in a live tournament.
"""
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

from knockout.models import (
    Cursor, DoneRound, Entrant, HistoryEntry, Match, NormalRound, Round, Stage,
    ThreeRound, Tournament,
)

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1

ENTRANT_FIELDS = ('id', 'name', 'artists', 'album_image', 'duration_ms',
                  'popularity', 'external_url', 'uri')


class SnapshotError(ValueError):
    """Raised when a saved snapshot cannot be decoded."""


def entrant_to_dict(entrant: Optional[Entrant]) -> Optional[Dict]:
    if entrant is None:
        return None
    return {field: getattr(entrant, field) for field in ENTRANT_FIELDS}


def entrant_from_dict(data: Optional[Dict], registry: Optional[Dict] = None) -> Optional[Entrant]:
    """Decode an entrant, reusing the registry's object when the id was seen before."""
    if data is None:
        return None
    if not isinstance(data, dict) or data.get('id') in (None, ''):
        raise SnapshotError(f"Entrant without id: {data!r}")
    if registry is not None and data['id'] in registry:
        return registry[data['id']]
    entrant = Entrant(
        id=data['id'],
        name=data.get('name') or '',
        artists=data.get('artists') or '',
        album_image=data.get('album_image'),
        duration_ms=data.get('duration_ms'),
        popularity=data.get('popularity') or 0,
        external_url=data.get('external_url'),
        uri=data.get('uri'),
    )
    if registry is not None:
        registry[entrant.id] = entrant
    return entrant


def _match_to_dict(match: Optional[Match]) -> Optional[Dict]:
    if match is None:
        return None
    return {
        'a': entrant_to_dict(match.a),
        'b': entrant_to_dict(match.b),
        'winner': entrant_to_dict(match.winner),
    }


def _match_from_dict(data: Optional[Dict], registry: Dict) -> Optional[Match]:
    if data is None:
        return None
    try:
        return Match(
            a=entrant_from_dict(data.get('a'), registry),
            b=entrant_from_dict(data.get('b'), registry),
            winner=entrant_from_dict(data.get('winner'), registry),
        )
    except AttributeError as e:
        raise SnapshotError(f"Malformed match: {data!r}") from e


def round_to_dict(round_: Round) -> Dict:
    data = {
        'type': round_.kind,
        'entrants': [entrant_to_dict(e) for e in round_.entrants],
    }
    if isinstance(round_, NormalRound):
        data['bye'] = entrant_to_dict(round_.bye)
        data['matches'] = [_match_to_dict(m) for m in round_.matches]
    elif isinstance(round_, ThreeRound):
        data['top'] = entrant_to_dict(round_.top)
        data['match'] = _match_to_dict(round_.match)
        data['final'] = _match_to_dict(round_.final)
    return data


def round_from_dict(data: Dict, registry: Dict) -> Round:
    if not isinstance(data, dict):
        raise SnapshotError(f"Malformed round: {data!r}")
    kind = data.get('type')
    entrants = tuple(entrant_from_dict(e, registry) for e in data.get('entrants') or [])

    if kind == NormalRound.kind:
        return NormalRound(
            entrants=entrants,
            bye=entrant_from_dict(data.get('bye'), registry),
            matches=tuple(_match_from_dict(m, registry) for m in data.get('matches') or []),
        )
    if kind == ThreeRound.kind:
        top = entrant_from_dict(data.get('top'), registry)
        match = _match_from_dict(data.get('match'), registry)
        if top is None or match is None:
            raise SnapshotError("Three-entrant round needs 'top' and 'match'")
        return ThreeRound(
            entrants=entrants,
            top=top,
            match=match,
            final=_match_from_dict(data.get('final'), registry),
        )
    if kind == DoneRound.kind:
        return DoneRound(entrants=entrants)
    raise SnapshotError(f"Unknown round type: {kind!r}")


def _cursor_to_dict(cursor: Optional[Cursor]) -> Optional[Dict]:
    if cursor is None:
        return None
    return {'round': cursor.round_index, 'stage': cursor.stage.value, 'match': cursor.match_index}


def _match_index(value) -> Optional[int]:
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool) or value < 0:
        raise ValueError(f"match index must be a non-negative integer, got {value!r}")
    return value


def _cursor_from_dict(data: Optional[Dict]) -> Optional[Cursor]:
    if data is None:
        return None
    try:
        return Cursor(round_index=int(data['round']), stage=Stage(data['stage']),
                      match_index=_match_index(data.get('match')))
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(f"Malformed cursor: {data!r}") from e


def _history_to_dict(entry: HistoryEntry) -> Dict:
    data = {'round': entry.round_index, 'stage': entry.stage.value, 'winner_id': entry.winner_id}
    if entry.match_index is not None:
        data['match'] = entry.match_index
    return data


def _history_from_dict(data: Dict) -> HistoryEntry:
    try:
        return HistoryEntry(round_index=int(data['round']), stage=Stage(data['stage']),
                            winner_id=data['winner_id'], match_index=_match_index(data.get('match')))
    except (KeyError, TypeError, ValueError) as e:
        raise SnapshotError(f"Malformed history entry: {data!r}") from e


def tournament_to_dict(tournament: Tournament) -> Dict:
    """Encode a tournament as plain dicts/lists, safe for YAML or JSON."""
    return {
        'round_index': tournament.round_index,
        'rounds': [round_to_dict(r) for r in tournament.rounds],
        'cursor': _cursor_to_dict(tournament.cursor),
        'champion': entrant_to_dict(tournament.champion),
        'history': [_history_to_dict(h) for h in tournament.history],
    }


def tournament_from_dict(data: Dict, registry: Optional[Dict] = None) -> Tournament:
    """Decode a tournament written by tournament_to_dict()."""
    if not isinstance(data, dict):
        raise SnapshotError("Tournament snapshot must be a mapping")
    if registry is None:
        registry = {}
    rounds = tuple(round_from_dict(r, registry) for r in data.get('rounds') or [])
    round_index = data.get('round_index', 0)
    if not isinstance(round_index, int) or (rounds and not 0 <= round_index < len(rounds)):
        raise SnapshotError(f"Round index out of range: {round_index!r}")
    cursor = _cursor_from_dict(data.get('cursor'))
    if cursor is not None and cursor.round_index != round_index:
        raise SnapshotError(f"Cursor round {cursor.round_index} does not match round index {round_index}")
    return Tournament(
        round_index=round_index,
        rounds=rounds,
        cursor=cursor,
        champion=entrant_from_dict(data.get('champion'), registry),
        history=tuple(_history_from_dict(h) for h in data.get('history') or []),
    )


def dump_session(tournament: Tournament, entrants: Iterable[Entrant], name: str = '') -> str:
    """Serialize a whole session (entrants + tournament) to YAML text."""
    payload = {
        'version': SNAPSHOT_VERSION,
        'saved_at': datetime.now().isoformat(),
        'name': name,
        'entrants': [entrant_to_dict(e) for e in entrants],
        'tournament': tournament_to_dict(tournament),
    }
    return yaml.safe_dump(payload, default_flow_style=False, allow_unicode=True, sort_keys=False)


def load_session(text: str) -> Tuple[Tournament, List[Entrant], Dict]:
    """
    Parse YAML written by dump_session().

    Returns (tournament, entrants, meta) where meta holds 'name' and 'saved_at'.
    Raises SnapshotError on anything that is not a readable session.
    """
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SnapshotError(f"Unreadable session: {e}") from e
    if not isinstance(payload, dict) or 'tournament' not in payload:
        raise SnapshotError("Session has no tournament")
    version = payload.get('version', SNAPSHOT_VERSION)
    if version != SNAPSHOT_VERSION:
        raise SnapshotError(f"Unsupported session version: {version!r}")

    registry = {}
    entrants = [entrant_from_dict(e, registry) for e in payload.get('entrants') or []]
    tournament = tournament_from_dict(payload['tournament'], registry)
    meta = {'name': payload.get('name') or '', 'saved_at': payload.get('saved_at')}
    logger.debug("Loaded session with %d entrants, %d rounds", len(entrants), len(tournament.rounds))
    return tournament, entrants, meta
