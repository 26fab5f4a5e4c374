"""
Shared pytest fixtures for knockout engine tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from knockout.models import Entrant


def make_entrants(*popularities):
    """Entrants t0, t1, ... with the given popularity scores, in input order."""
    return [
        Entrant(id=f"t{i}", name=f"Track {i}", artists=f"Artist {i}", popularity=p)
        for i, p in enumerate(popularities)
    ]


def by_popularity(entrants, popularity):
    return next(e for e in entrants if e.popularity == popularity)


@pytest.fixture
def four_entrants():
    """Four entrants, deliberately not in popularity order."""
    return make_entrants(50, 90, 30, 70)


@pytest.fixture
def five_entrants():
    return make_entrants(90, 80, 70, 60, 50)


@pytest.fixture
def three_entrants():
    return make_entrants(60, 90, 40)


@pytest.fixture
def raw_records():
    """Catalog-style playlist items, including ones that must be skipped."""
    return [
        {'track': {'id': 'a1', 'name': 'Alpha', 'artists': [{'name': 'X'}, {'name': 'Y'}],
                   'popularity': 80, 'duration_ms': 200000, 'uri': 'cat:track:a1',
                   'album': {'images': [{'url': 'big.jpg'}, {'url': 'small.jpg'}]},
                   'external_urls': {'web': 'https://example.test/a1'}}},
        {'track': {'id': 'b2', 'name': 'Bravo', 'artists': [{'name': 'Z'}], 'popularity': 40}},
        {'track': {'id': 'loc', 'name': 'Local', 'popularity': 99}, 'is_local': True},
        {'track': {'name': 'No id', 'popularity': 10}},
        {'track': {'id': 'a1', 'name': 'Alpha again', 'popularity': 1}},
        {'track': None},
        {'id': 'c3', 'name': 'Charlie', 'artists': 'W', 'popularity': 60},
    ]
