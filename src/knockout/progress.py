"""
Read-only views over a tournament snapshot: progress counters, labels and
bracket data for display.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from knockout.models import Entrant, Match, NormalRound, Stage, ThreeRound, Tournament
from knockout.rounds import get_round_name

# A three-entrant round always counts as two decisions, even before the
# final has been created.
THREE_ROUND_SLOTS = 2


@dataclass(frozen=True)
class Progress:
    total: int
    done: int

    @property
    def fraction(self) -> float:
        return self.done / self.total if self.total else 0.0


def totals(tournament: Optional[Tournament]) -> Progress:
    """Count decision slots and decided slots across all rounds built so far."""
    if tournament is None:
        return Progress(total=0, done=0)

    total = 0
    done = 0
    for round_ in tournament.rounds:
        if isinstance(round_, NormalRound):
            total += len(round_.matches)
            done += sum(1 for m in round_.matches if m.decided)
        elif isinstance(round_, ThreeRound):
            total += THREE_ROUND_SLOTS
            done += 1 if round_.match.decided else 0
            done += 1 if round_.final is not None and round_.final.decided else 0
    return Progress(total=total, done=done)


def progress_label(tournament: Optional[Tournament]) -> str:
    """Short human-readable description of where the tournament stands."""
    if tournament is None:
        return ""
    if tournament.champion is not None:
        return "Finished"

    round_num = tournament.round_index + 1
    cursor = tournament.cursor
    round_ = tournament.active_round
    if round_ is None or cursor is None:
        return f"Round {round_num}"

    if cursor.stage is Stage.QUALIFIER:
        return f"Round {round_num} • Qualifier (pick 1 of 2)"
    if cursor.stage is Stage.FINAL:
        return "Final • Choose your champion"
    if isinstance(round_, NormalRound) and cursor.match_index is not None:
        return f"Round {round_num} • Match {cursor.match_index + 1}/{len(round_.matches)}"
    return f"Round {round_num}"


def _entrant_view(entrant: Optional[Entrant]) -> Optional[Dict]:
    if entrant is None:
        return None
    return {
        'id': entrant.id,
        'name': entrant.name,
        'artists': entrant.artists,
        'popularity': entrant.popularity,
    }


def _match_view(match: Match, number: int) -> Dict:
    return {
        'match_number': number,
        'a': _entrant_view(match.a),
        'b': _entrant_view(match.b),
        'winner': _entrant_view(match.winner),
        'is_playable': match.playable,
    }


def bracket_display(tournament: Optional[Tournament]) -> Dict:
    """
    Get bracket data formatted for display.

    Returns dict with:
    - 'rounds': list of round dicts (number, name, kind, bye/top, matches)
    - 'round_index': index of the active round
    - 'champion': champion view or None
    - 'progress': {'done', 'total'}
    """
    if tournament is None:
        return {'rounds': [], 'round_index': 0, 'champion': None, 'progress': {'done': 0, 'total': 0}}

    rounds: List[Dict] = []
    for i, round_ in enumerate(tournament.rounds):
        view = {
            'number': i + 1,
            'name': get_round_name(len(round_.entrants)),
            'kind': round_.kind,
            'is_active': i == tournament.round_index and tournament.champion is None,
            'entrant_count': len(round_.entrants),
            'bye': None,
            'top': None,
            'matches': [],
        }
        if isinstance(round_, NormalRound):
            view['bye'] = _entrant_view(round_.bye)
            view['matches'] = [_match_view(m, n) for n, m in enumerate(round_.matches, start=1)]
        elif isinstance(round_, ThreeRound):
            view['top'] = _entrant_view(round_.top)
            view['matches'] = [_match_view(round_.match, 1)]
            if round_.final is not None:
                view['matches'].append(_match_view(round_.final, 2))
        rounds.append(view)

    progress = totals(tournament)
    return {
        'rounds': rounds,
        'round_index': tournament.round_index,
        'champion': _entrant_view(tournament.champion),
        'progress': {'done': progress.done, 'total': progress.total},
    }


def champion_share_text(tournament: Optional[Tournament], collection_name: Optional[str] = None) -> str:
    """Text for sharing the champion, or '' if there is none yet."""
    if tournament is None or tournament.champion is None:
        return ""
    champion = tournament.champion
    source = f" from “{collection_name}”" if collection_name else ""
    text = f"My champion{source}: {champion.name}"
    if champion.artists:
        text += f" — {champion.artists}"
    return text
