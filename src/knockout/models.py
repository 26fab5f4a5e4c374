"""
Value types for the knockout engine.

Every type here is immutable. Transitions build new values with
``dataclasses.replace`` and share untouched rounds and entrants by reference.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union


class Side(str, Enum):
    """Which slot of the current match won."""
    FIRST = 'a'
    SECOND = 'b'

    @classmethod
    def parse(cls, value) -> 'Side':
        """Accept a Side, 'a'/'b', 'first'/'second' or 0/1."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key in ('a', 'first'):
                return cls.FIRST
            if key in ('b', 'second'):
                return cls.SECOND
        elif isinstance(value, int) and not isinstance(value, bool) and value in (0, 1):
            return cls.FIRST if value == 0 else cls.SECOND
        raise ValueError(f"Unknown side: {value!r}")


class Stage(str, Enum):
    """Kind of decision a cursor points at."""
    MATCH = 'match'
    QUALIFIER = 'qualifier'
    FINAL = 'final'


@dataclass(frozen=True)
class Entrant:
    id: str
    name: str
    artists: str = ''
    album_image: Optional[str] = None
    duration_ms: Optional[int] = None
    popularity: int = 0
    external_url: Optional[str] = None
    uri: Optional[str] = None

    def __repr__(self):
        return f"Entrant(id={self.id}, name={self.name}, popularity={self.popularity})"


@dataclass(frozen=True)
class Match:
    a: Optional[Entrant]
    b: Optional[Entrant]
    winner: Optional[Entrant] = None

    @property
    def decided(self) -> bool:
        return self.winner is not None

    @property
    def playable(self) -> bool:
        """Both slots filled and no winner yet."""
        return self.a is not None and self.b is not None and self.winner is None

    def slot(self, side) -> Optional[Entrant]:
        return self.a if Side.parse(side) is Side.FIRST else self.b


@dataclass(frozen=True)
class NormalRound:
    entrants: Tuple[Entrant, ...]
    bye: Optional[Entrant]
    matches: Tuple[Match, ...]

    kind = 'normal'


@dataclass(frozen=True)
class ThreeRound:
    entrants: Tuple[Entrant, ...]
    top: Entrant
    match: Match
    final: Optional[Match] = None

    kind = 'three'


@dataclass(frozen=True)
class DoneRound:
    entrants: Tuple[Entrant, ...]

    kind = 'done'


Round = Union[NormalRound, ThreeRound, DoneRound]


@dataclass(frozen=True)
class Cursor:
    round_index: int
    stage: Stage
    match_index: Optional[int] = None


@dataclass(frozen=True)
class HistoryEntry:
    round_index: int
    stage: Stage
    winner_id: str
    match_index: Optional[int] = None


@dataclass(frozen=True)
class Tournament:
    round_index: int = 0
    rounds: Tuple[Round, ...] = ()
    cursor: Optional[Cursor] = None
    champion: Optional[Entrant] = None
    history: Tuple[HistoryEntry, ...] = ()

    @property
    def active_round(self) -> Optional[Round]:
        if 0 <= self.round_index < len(self.rounds):
            return self.rounds[self.round_index]
        return None

    @property
    def is_complete(self) -> bool:
        return self.champion is not None
