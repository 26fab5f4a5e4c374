"""
Popularity ranking shared by every round construction step.
"""
from typing import Iterable, List, Optional

from knockout.models import Entrant


def rank(entrants: Iterable[Optional[Entrant]]) -> List[Entrant]:
    """
    Return entrants ordered by popularity, most popular first.

    Absent entries are dropped. The sort is stable, so entrants with equal
    popularity keep their input order. The input is never modified.
    """
    present = [e for e in (entrants or []) if e]
    return sorted(present, key=lambda e: -(e.popularity or 0))
