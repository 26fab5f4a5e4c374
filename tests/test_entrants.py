"""
Unit tests for cleaning raw catalog records into entrants.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from knockout.entrants import clean_entrants, entrant_from_record, format_duration


class TestEntrantFromRecord:
    """Tests for entrant_from_record."""

    def test_nested_track(self, raw_records):
        entrant = entrant_from_record(raw_records[0])
        assert entrant.id == 'a1'
        assert entrant.name == 'Alpha'
        assert entrant.artists == 'X, Y'
        assert entrant.album_image == 'big.jpg'
        assert entrant.duration_ms == 200000
        assert entrant.popularity == 80
        assert entrant.uri == 'cat:track:a1'
        assert entrant.external_url == 'https://example.test/a1'

    def test_flat_record(self, raw_records):
        entrant = entrant_from_record(raw_records[-1])
        assert entrant.id == 'c3'
        assert entrant.artists == 'W'

    def test_local_items_skipped(self):
        assert entrant_from_record({'track': {'id': 'x'}, 'is_local': True}) is None
        assert entrant_from_record({'track': {'id': 'x', 'is_local': True}}) is None

    def test_missing_id_skipped(self):
        assert entrant_from_record({'name': 'Nameless'}) is None
        assert entrant_from_record({'id': '', 'name': 'Blank'}) is None

    def test_empty_track_skipped(self):
        assert entrant_from_record({'track': None}) is None
        assert entrant_from_record("not a record") is None

    @pytest.mark.parametrize("raw, expected", [
        (None, 0), ('55', 55), (150, 100), (-4, 0), ('loud', 0),
    ])
    def test_popularity_normalized(self, raw, expected):
        assert entrant_from_record({'id': 'x', 'popularity': raw}).popularity == expected


class TestCleanEntrants:
    """Tests for clean_entrants."""

    def test_filters_and_dedupes(self, raw_records):
        entrants = clean_entrants(raw_records)
        assert [e.id for e in entrants] == ['a1', 'b2', 'c3']
        # first occurrence wins
        assert entrants[0].name == 'Alpha'

    def test_limit(self, raw_records):
        assert [e.id for e in clean_entrants(raw_records, limit=2)] == ['a1', 'b2']

    @pytest.mark.parametrize("limit", [0, -3])
    def test_non_positive_limit_yields_nothing(self, raw_records, limit):
        assert clean_entrants(raw_records, limit=limit) == []

    def test_empty(self):
        assert clean_entrants([]) == []
        assert clean_entrants(None) == []


class TestFormatDuration:
    """Tests for format_duration."""

    def test_minutes_and_seconds(self):
        assert format_duration(200000) == "3:20"
        assert format_duration(61000) == "1:01"
        assert format_duration(0) == "0:00"

    def test_missing(self):
        assert format_duration(None) == "—"
