"""
Round construction for a knockout bracket of any size.

Rules applied to the survivors of each round:
- 0 or 1 survivors: the bracket is done
- exactly 3 survivors: the most popular qualifies straight to the final,
  the other two play a qualifier
- otherwise: if the count is odd the most popular gets a bye, and the rest
  are fold-seeded (strongest vs weakest, 2nd vs 2nd weakest, ...)
"""
import logging
from typing import Iterable, List, Optional

from knockout.models import DoneRound, Entrant, Match, NormalRound, Round, ThreeRound
from knockout.ranking import rank

logger = logging.getLogger(__name__)


def get_round_name(entrants_in_round: int) -> str:
    """Get the name of a round based on how many entrants it starts with."""
    if entrants_in_round <= 1:
        return "Champion"
    elif entrants_in_round == 2:
        return "Final"
    elif entrants_in_round == 3:
        return "Final Three"
    elif entrants_in_round == 4:
        return "Semifinal"
    elif entrants_in_round <= 8:
        return "Quarterfinal"
    else:
        return f"Round of {entrants_in_round}"


def fold_pairs(pool: List[Entrant]) -> List[Match]:
    """
    Pair the i-th strongest of a ranked pool with the i-th weakest.

    For 6 entrants ranked [1..6]: 1v6, 2v5, 3v4
    """
    size = len(pool)
    return [Match(a=pool[i], b=pool[size - 1 - i]) for i in range(size // 2)]


def build_round(survivors: Iterable[Optional[Entrant]]) -> Round:
    """Build one round from the entrants still alive. The input is not modified."""
    ranked = rank(survivors)

    if len(ranked) <= 1:
        return DoneRound(entrants=tuple(ranked))

    if len(ranked) == 3:
        return ThreeRound(
            entrants=tuple(ranked),
            top=ranked[0],
            match=Match(a=ranked[1], b=ranked[2]),
        )

    bye = None
    pool = ranked
    if len(ranked) % 2 == 1:
        bye = ranked[0]
        pool = ranked[1:]

    matches = fold_pairs(pool)
    logger.debug("Built round of %d: %d matches, bye=%s", len(ranked), len(matches),
                 bye.id if bye else None)
    return NormalRound(entrants=tuple(ranked), bye=bye, matches=tuple(matches))


def is_round_decided(round_: Round) -> bool:
    """True when every decision in the round has been made."""
    if isinstance(round_, NormalRound):
        return all(m.decided for m in round_.matches)
    if isinstance(round_, ThreeRound):
        return round_.match.decided and round_.final is not None and round_.final.decided
    return True


def round_survivors(round_: NormalRound) -> List[Entrant]:
    """Winners of a normal round in match order, followed by the bye."""
    survivors = [m.winner for m in round_.matches if m.winner is not None]
    if round_.bye is not None:
        survivors.append(round_.bye)
    return survivors
