"""
Knockout tournament state machine.

A Tournament is threaded through pure transitions:

    create_tournament(entrants)  -> settled snapshot
    apply_pick(snapshot, side)   -> next snapshot
    settle(snapshot)             -> snapshot with trivial rounds collapsed

No transition mutates its input. Malformed calls are no-ops that return the
input snapshot itself; use try_pick() to find out why a pick was rejected.
"""
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Iterable, List, Optional

from knockout.models import (
    Cursor, DoneRound, Entrant, HistoryEntry, Match, NormalRound, Side, Stage,
    ThreeRound, Tournament,
)
from knockout.rounds import build_round, is_round_decided, round_survivors

logger = logging.getLogger(__name__)


class PickStatus(str, Enum):
    APPLIED = 'applied'
    NO_PENDING_DECISION = 'no_pending_decision'
    EMPTY_SLOT = 'empty_slot'


@dataclass(frozen=True)
class PickResult:
    tournament: Tournament
    status: PickStatus

    @property
    def applied(self) -> bool:
        return self.status is PickStatus.APPLIED


@dataclass(frozen=True)
class Matchup:
    """The decision waiting at the cursor, as shown to whoever picks."""
    kind: str
    a: Optional[Entrant]
    b: Optional[Entrant]
    waiting: Optional[Entrant] = None


def derive_cursor(tournament: Tournament) -> Optional[Cursor]:
    """Find the next pending decision in the active round, or None."""
    round_ = tournament.active_round
    index = tournament.round_index

    if isinstance(round_, ThreeRound):
        if not round_.match.decided:
            return Cursor(round_index=index, stage=Stage.QUALIFIER)
        if round_.final is not None and not round_.final.decided:
            return Cursor(round_index=index, stage=Stage.FINAL)
        return None

    if isinstance(round_, NormalRound):
        for i, match in enumerate(round_.matches):
            if match.playable:
                return Cursor(round_index=index, stage=Stage.MATCH, match_index=i)
        return None

    return None


def _with_cursor(tournament: Tournament) -> Tournament:
    cursor = derive_cursor(tournament)
    if cursor == tournament.cursor:
        return tournament
    return replace(tournament, cursor=cursor)


def _crown(tournament: Tournament, champion: Entrant) -> Tournament:
    logger.info("Champion: %s (%s) after %d decisions",
                champion.name, champion.id, len(tournament.history))
    return replace(tournament, champion=champion, cursor=None)


def _advance(tournament: Tournament, survivors: List[Entrant]) -> Tournament:
    """Append the round built from survivors and make it active."""
    next_round = build_round(survivors)
    logger.debug("Round %d complete, %d survivors advance",
                 tournament.round_index + 1, len(survivors))
    return replace(
        tournament,
        rounds=tournament.rounds + (next_round,),
        round_index=tournament.round_index + 1,
    )


def _replace_active_round(tournament: Tournament, round_, entry: HistoryEntry) -> Tournament:
    rounds = list(tournament.rounds)
    rounds[tournament.round_index] = round_
    return replace(tournament, rounds=tuple(rounds), history=tournament.history + (entry,))


def settle(tournament: Tournament) -> Tournament:
    """
    Close out rounds that need no decision.

    Stops at the first pending decision, at a three-entrant round (which always
    needs a pick first), or once a champion is crowned. Anything unexpected is a
    stall, never an error.
    """
    if tournament.champion is not None:
        return tournament

    t = tournament
    while t.champion is None:
        t = _with_cursor(t)
        if t.cursor is not None:
            break

        round_ = t.active_round
        if isinstance(round_, NormalRound):
            if not is_round_decided(round_):
                break
            survivors = round_survivors(round_)
            if len(survivors) == 1:
                t = _crown(t, survivors[0])
                break
            t = _advance(t, survivors)
            continue

        if isinstance(round_, DoneRound):
            if len(round_.entrants) == 1:
                t = _crown(t, round_.entrants[0])
            break

        # three-entrant rounds and unknown states both halt here
        break

    return _with_cursor(t)


def create_tournament(entrants: Iterable[Optional[Entrant]]) -> Tournament:
    """Build round 0 from the full entrant list and settle it."""
    first = build_round(entrants or [])
    logger.info("Creating tournament with %d entrants", len(first.entrants))
    return settle(_with_cursor(Tournament(rounds=(first,))))


def _reject(tournament: Tournament, status: PickStatus, reason: str) -> PickResult:
    logger.debug("Pick rejected: %s", reason)
    return PickResult(tournament, status)


def try_pick(tournament: Tournament, side) -> PickResult:
    """
    Apply one decision at the current cursor.

    `side` names the winning slot of the current match (Side.FIRST/'a' or
    Side.SECOND/'b'). On rejection the returned snapshot is the input itself.
    """
    side = Side.parse(side)
    cursor = tournament.cursor
    if tournament.champion is not None or cursor is None:
        return _reject(tournament, PickStatus.NO_PENDING_DECISION, "no active cursor")
    if cursor.round_index != tournament.round_index:
        return _reject(tournament, PickStatus.NO_PENDING_DECISION, "cursor points at another round")

    round_ = tournament.active_round
    index = tournament.round_index

    if isinstance(round_, ThreeRound) and cursor.stage is Stage.QUALIFIER:
        if round_.match.decided:
            return _reject(tournament, PickStatus.NO_PENDING_DECISION, "qualifier already decided")
        winner = round_.match.slot(side)
        if winner is None:
            return _reject(tournament, PickStatus.EMPTY_SLOT, "empty qualifier slot")
        updated = replace(
            round_,
            match=replace(round_.match, winner=winner),
            final=Match(a=round_.top, b=winner),
        )
        entry = HistoryEntry(round_index=index, stage=Stage.QUALIFIER, winner_id=winner.id)
        t = _replace_active_round(tournament, updated, entry)
        return PickResult(_with_cursor(t), PickStatus.APPLIED)

    if isinstance(round_, ThreeRound) and cursor.stage is Stage.FINAL:
        final = round_.final
        if final is None or final.decided:
            return _reject(tournament, PickStatus.NO_PENDING_DECISION, "no final to decide")
        winner = final.slot(side)
        if winner is None:
            return _reject(tournament, PickStatus.EMPTY_SLOT, "empty final slot")
        updated = replace(round_, final=replace(final, winner=winner))
        entry = HistoryEntry(round_index=index, stage=Stage.FINAL, winner_id=winner.id)
        t = _replace_active_round(tournament, updated, entry)
        return PickResult(_crown(t, winner), PickStatus.APPLIED)

    if isinstance(round_, NormalRound) and cursor.stage is Stage.MATCH:
        match_index = cursor.match_index
        if match_index is None or not 0 <= match_index < len(round_.matches):
            return _reject(tournament, PickStatus.NO_PENDING_DECISION, "cursor past end of round")
        match = round_.matches[match_index]
        if match.decided:
            return _reject(tournament, PickStatus.NO_PENDING_DECISION, "match already decided")
        winner = match.slot(side)
        if winner is None:
            return _reject(tournament, PickStatus.EMPTY_SLOT, "empty match slot")

        matches = list(round_.matches)
        matches[match_index] = replace(match, winner=winner)
        updated = replace(round_, matches=tuple(matches))
        entry = HistoryEntry(round_index=index, stage=Stage.MATCH, winner_id=winner.id,
                             match_index=match_index)
        t = _replace_active_round(tournament, updated, entry)

        if not is_round_decided(updated):
            return PickResult(_with_cursor(t), PickStatus.APPLIED)

        survivors = round_survivors(updated)
        if len(survivors) == 1:
            return PickResult(_crown(t, survivors[0]), PickStatus.APPLIED)
        return PickResult(settle(_advance(t, survivors)), PickStatus.APPLIED)

    return _reject(tournament, PickStatus.NO_PENDING_DECISION, "cursor does not match active round")


def apply_pick(tournament: Tournament, side) -> Tournament:
    """Apply a pick, returning the input unchanged if it cannot be applied."""
    return try_pick(tournament, side).tournament


def current_matchup(tournament: Tournament) -> Optional[Matchup]:
    """Describe the pending decision, or None when nothing is pending."""
    if tournament.champion is not None or tournament.cursor is None:
        return None
    round_ = tournament.active_round
    cursor = tournament.cursor

    if isinstance(round_, ThreeRound):
        if cursor.stage is Stage.QUALIFIER:
            return Matchup(kind='qualifier', a=round_.match.a, b=round_.match.b, waiting=round_.top)
        if cursor.stage is Stage.FINAL and round_.final is not None:
            return Matchup(kind='final', a=round_.final.a, b=round_.final.b)
        return None

    if isinstance(round_, NormalRound) and cursor.match_index is not None:
        if 0 <= cursor.match_index < len(round_.matches):
            match = round_.matches[cursor.match_index]
            return Matchup(kind='normal', a=match.a, b=match.b, waiting=round_.bye)
    return None
