"""
Unit tests for saving and restoring tournament snapshots.
"""
import pytest
import sys
import os
import yaml

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from knockout.engine import apply_pick, create_tournament
from knockout.snapshot import (
    SNAPSHOT_VERSION, SnapshotError, dump_session, entrant_from_dict, entrant_to_dict,
    load_session, tournament_from_dict, tournament_to_dict,
)
from conftest import make_entrants


def mid_tournament(entrants, picks):
    t = create_tournament(entrants)
    for side in picks:
        t = apply_pick(t, side)
    return t


class TestEntrantCodec:
    """Tests for entrant encoding."""

    def test_none(self):
        assert entrant_to_dict(None) is None
        assert entrant_from_dict(None) is None

    def test_registry_shares_objects(self):
        registry = {}
        first = entrant_from_dict({'id': 'x', 'name': 'X', 'popularity': 3}, registry)
        second = entrant_from_dict({'id': 'x', 'name': 'X', 'popularity': 3}, registry)
        assert first is second

    def test_missing_id(self):
        with pytest.raises(SnapshotError):
            entrant_from_dict({'name': 'No id'})


class TestTournamentCodec:
    """Tests for tournament_to_dict / tournament_from_dict."""

    @pytest.mark.parametrize("picks", [[], ['a'], ['a', 'b'], ['a', 'b', 'a'], ['b', 'b', 'a', 'b']])
    def test_restores_equal_snapshot(self, five_entrants, picks):
        t = mid_tournament(five_entrants, picks)
        restored = tournament_from_dict(tournament_to_dict(t))
        assert restored == t

    def test_three_round_final_survives(self, three_entrants):
        t = mid_tournament(three_entrants, ['a'])
        restored = tournament_from_dict(tournament_to_dict(t))
        assert restored.rounds[0].final == t.rounds[0].final
        assert restored.cursor == t.cursor

    def test_entrants_shared_after_restore(self, five_entrants):
        t = mid_tournament(five_entrants, ['a', 'a', 'a', 'a'])
        restored = tournament_from_dict(tournament_to_dict(t))
        champion = restored.champion
        assert champion is not None
        assert any(e is champion for e in restored.rounds[0].entrants)
        assert any(e is champion for e in restored.rounds[1].entrants)

    def test_yaml_safe(self, four_entrants):
        t = mid_tournament(four_entrants, ['a'])
        text = yaml.safe_dump(tournament_to_dict(t))
        assert tournament_from_dict(yaml.safe_load(text)) == t

    def test_restored_snapshot_plays_on_identically(self, five_entrants):
        t = mid_tournament(five_entrants, ['b'])
        restored = tournament_from_dict(tournament_to_dict(t))
        for side in ['a', 'a', 'b']:
            t = apply_pick(t, side)
            restored = apply_pick(restored, side)
        assert restored == t
        assert restored.champion == t.champion

    def test_unknown_round_type(self):
        with pytest.raises(SnapshotError):
            tournament_from_dict({'round_index': 0, 'rounds': [{'type': 'swiss', 'entrants': []}]})

    def test_three_round_without_top(self):
        with pytest.raises(SnapshotError):
            tournament_from_dict({'round_index': 0, 'rounds': [{'type': 'three', 'entrants': []}]})

    def test_round_index_out_of_range(self, four_entrants):
        data = tournament_to_dict(create_tournament(four_entrants))
        data['round_index'] = 3
        with pytest.raises(SnapshotError):
            tournament_from_dict(data)

    def test_bad_cursor(self, four_entrants):
        data = tournament_to_dict(create_tournament(four_entrants))
        data['cursor'] = {'round': 0, 'stage': 'semifinal'}
        with pytest.raises(SnapshotError):
            tournament_from_dict(data)

    @pytest.mark.parametrize("match", ['0', 1.0, True, -1])
    def test_cursor_match_index_must_be_int(self, four_entrants, match):
        data = tournament_to_dict(create_tournament(four_entrants))
        data['cursor']['match'] = match
        with pytest.raises(SnapshotError):
            tournament_from_dict(data)

    def test_history_match_index_must_be_int(self, four_entrants):
        t = apply_pick(create_tournament(four_entrants), 'a')
        data = tournament_to_dict(t)
        data['history'][0]['match'] = '0'
        with pytest.raises(SnapshotError):
            tournament_from_dict(data)

    def test_cursor_round_must_match_round_index(self, four_entrants):
        data = tournament_to_dict(create_tournament(four_entrants))
        data['cursor']['round'] = 1
        with pytest.raises(SnapshotError):
            tournament_from_dict(data)

    def test_not_a_mapping(self):
        with pytest.raises(SnapshotError):
            tournament_from_dict(['rounds'])


class TestSession:
    """Tests for dump_session / load_session."""

    def test_round_trip(self, five_entrants):
        t = mid_tournament(five_entrants, ['a'])
        text = dump_session(t, five_entrants, name="Road Trip")
        restored, entrants, meta = load_session(text)
        assert restored == t
        assert entrants == five_entrants
        assert meta['name'] == "Road Trip"
        assert meta['saved_at']

    def test_session_entrants_are_round_entrants(self, four_entrants):
        t = create_tournament(four_entrants)
        restored, entrants, _meta = load_session(dump_session(t, four_entrants))
        first_match = restored.rounds[0].matches[0]
        assert any(e is first_match.a for e in entrants)

    def test_version_checked(self, four_entrants):
        payload = yaml.safe_load(dump_session(create_tournament(four_entrants), four_entrants))
        payload['version'] = SNAPSHOT_VERSION + 1
        with pytest.raises(SnapshotError):
            load_session(yaml.safe_dump(payload))

    def test_unreadable_yaml(self):
        with pytest.raises(SnapshotError):
            load_session("rounds: [unclosed")

    def test_missing_tournament(self):
        with pytest.raises(SnapshotError):
            load_session("version: 1\nentrants: []\n")
