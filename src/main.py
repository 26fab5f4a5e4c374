#!/usr/bin/env python3
"""
Play a knockout tournament in the terminal.

Usage:
    python src/main.py entrants.yaml
    python src/main.py entrants.yaml --auto
    python src/main.py --resume session.yaml --save session.yaml

The entrants file is YAML (or JSON): either a list of entrant records or a
mapping with 'name' and 'entrants' keys.

Exit codes:
    0: Champion crowned (or the session was saved and left unfinished)
    1: Entrants or session could not be loaded
"""
import argparse
import logging
import os
import sys

import yaml

from knockout.engine import apply_pick, create_tournament, current_matchup
from knockout.entrants import clean_entrants, format_duration
from knockout.models import Side
from knockout.progress import champion_share_text, progress_label, totals
from knockout.snapshot import SnapshotError, dump_session, load_session

logger = logging.getLogger(__name__)


def load_entrants_file(file_path, limit=None):
    """Return (name, entrants) from a YAML/JSON entrants file."""
    with open(file_path, mode='r', encoding='utf-8') as file:
        data = yaml.safe_load(file)
    name = ''
    records = data
    if isinstance(data, dict):
        name = data.get('name') or ''
        records = data.get('entrants') or []
    if not isinstance(records, list):
        raise ValueError(f"{file_path}: expected a list of entrants")
    return name, clean_entrants(records, limit=limit)


def more_popular_side(matchup):
    """Pick whichever side is more popular; the first slot wins ties."""
    a_score = matchup.a.popularity if matchup.a else -1
    b_score = matchup.b.popularity if matchup.b else -1
    return Side.SECOND if b_score > a_score else Side.FIRST


def describe(entrant):
    if entrant is None:
        return "(empty)"
    artists = f" — {entrant.artists}" if entrant.artists else ""
    return f"{entrant.name}{artists} [{entrant.popularity}/100, {format_duration(entrant.duration_ms)}]"


def prompt_side(matchup):
    """Ask on stdin. Returns a Side, or None to stop."""
    if matchup.waiting is not None:
        role = "waits in the final" if matchup.kind == 'qualifier' else "has a bye"
        print(f"  {describe(matchup.waiting)} {role}")
    print(f"  a) {describe(matchup.a)}")
    print(f"  b) {describe(matchup.b)}")
    while True:
        answer = input("Pick a or b (q to stop): ").strip().lower()
        if answer in ('q', 'quit'):
            return None
        try:
            return Side.parse(answer)
        except ValueError:
            print("Please answer a, b or q.")


def play(tournament, choose, on_change=None):
    """
    Drive picks until a champion is crowned or `choose` returns None.

    `choose` receives the current Matchup and returns a side.
    `on_change` is called with every new snapshot.
    """
    while tournament.champion is None:
        matchup = current_matchup(tournament)
        if matchup is None:
            break
        progress = totals(tournament)
        print(f"\n{progress_label(tournament)}  ({progress.done}/{progress.total})")
        side = choose(matchup)
        if side is None:
            break
        tournament = apply_pick(tournament, side)
        if on_change is not None:
            on_change(tournament)
    return tournament


def save(path, tournament, entrants, name):
    with open(path, mode='w', encoding='utf-8') as file:
        file.write(dump_session(tournament, entrants, name=name))
    logger.debug("Saved session to %s", path)


def positive_int(value):
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def main(argv=None):
    parser = argparse.ArgumentParser(description='Play a knockout tournament in the terminal')
    parser.add_argument('entrants_file', nargs='?', help='YAML or JSON file with entrant records')
    parser.add_argument('--resume', help='Continue a session saved with --save')
    parser.add_argument('--save', help='Write the session to this file after every pick')
    parser.add_argument('--auto', action='store_true', help='Always pick the more popular entrant')
    parser.add_argument('--limit', type=positive_int, default=2000, help='Maximum number of entrants (default: 2000)')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format='%(levelname)s %(name)s: %(message)s')

    if args.resume:
        try:
            with open(args.resume, mode='r', encoding='utf-8') as file:
                tournament, entrants, meta = load_session(file.read())
        except (OSError, SnapshotError) as e:
            print(f"Error: could not resume {args.resume}: {e}", file=sys.stderr)
            return 1
        name = meta['name']
    elif args.entrants_file:
        try:
            name, entrants = load_entrants_file(args.entrants_file, limit=args.limit)
        except (OSError, ValueError, yaml.YAMLError) as e:
            print(f"Error: could not load {args.entrants_file}: {e}", file=sys.stderr)
            return 1
        if not entrants:
            print(f"No usable entrants in {args.entrants_file}", file=sys.stderr)
            return 1
        name = name or os.path.splitext(os.path.basename(args.entrants_file))[0]
        tournament = create_tournament(entrants)
    else:
        parser.print_usage(sys.stderr)
        return 1

    on_change = None
    if args.save:
        def on_change(snapshot):
            save(args.save, snapshot, entrants, name)
        on_change(tournament)

    choose = more_popular_side if args.auto else prompt_side
    tournament = play(tournament, choose, on_change=on_change)

    if tournament.champion is None:
        print(f"\nStopped at: {progress_label(tournament)}")
        return 0

    print(f"\nChampion after {len(tournament.history)} picks: {describe(tournament.champion)}")
    print(champion_share_text(tournament, name or None))
    return 0


if __name__ == '__main__':
    sys.exit(main())
