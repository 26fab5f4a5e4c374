"""
Turning raw catalog records into a clean entrant list.

Records come either flat ({'id': ..., 'name': ..., 'popularity': ...}) or as
playlist items with the entrant nested under 'track'. Local items and items
without an id are skipped, duplicates are dropped (first one wins) and the
list is capped at an optional limit.
"""
import logging
from typing import Dict, Iterable, List, Optional

from knockout.models import Entrant

logger = logging.getLogger(__name__)

MIN_POPULARITY = 0
MAX_POPULARITY = 100


def _join_artists(artists) -> str:
    if not artists:
        return ''
    if isinstance(artists, str):
        return artists
    names = []
    for artist in artists:
        if isinstance(artist, dict):
            if artist.get('name'):
                names.append(artist['name'])
        elif artist:
            names.append(str(artist))
    return ', '.join(names)


def _largest_image(record: Dict) -> Optional[str]:
    if record.get('album_image'):
        return record['album_image']
    album = record.get('album')
    if not isinstance(album, dict):
        return None
    images = album.get('images') or []
    # catalogs list images largest first
    for image in images:
        if isinstance(image, dict) and image.get('url'):
            return image['url']
    return None


def _popularity(value) -> int:
    try:
        score = int(value)
    except (TypeError, ValueError):
        return MIN_POPULARITY
    return max(MIN_POPULARITY, min(MAX_POPULARITY, score))


def entrant_from_record(record: Dict) -> Optional[Entrant]:
    """
    Build an Entrant from one raw record.

    Returns None for records that cannot take part (local files, no id).
    """
    if not isinstance(record, dict):
        return None
    item = record
    if isinstance(record.get('track'), dict):
        if record.get('is_local'):
            return None
        item = record['track']
    elif 'track' in record:
        return None
    if item.get('is_local'):
        return None

    entrant_id = item.get('id')
    if entrant_id in (None, ''):
        return None

    external_url = item.get('external_url')
    if not external_url and isinstance(item.get('external_urls'), dict):
        external_url = next(iter(item['external_urls'].values()), None)

    return Entrant(
        id=entrant_id,
        name=item.get('name') or '',
        artists=_join_artists(item.get('artists')),
        album_image=_largest_image(item),
        duration_ms=item.get('duration_ms'),
        popularity=_popularity(item.get('popularity')),
        external_url=external_url,
        uri=item.get('uri'),
    )


def clean_entrants(records: Iterable[Dict], limit: Optional[int] = None) -> List[Entrant]:
    """Convert, filter and de-duplicate raw records, keeping input order."""
    entrants = []
    seen = set()
    skipped = 0
    for record in records or []:
        if limit is not None and len(entrants) >= limit:
            break
        entrant = entrant_from_record(record)
        if entrant is None:
            skipped += 1
            continue
        if entrant.id in seen:
            skipped += 1
            continue
        seen.add(entrant.id)
        entrants.append(entrant)
    if skipped:
        logger.info("Skipped %d unusable or duplicate records", skipped)
    return entrants


def format_duration(ms: Optional[int]) -> str:
    """Format milliseconds as m:ss."""
    if ms is None:
        return "—"
    total = int(ms) // 1000
    return f"{total // 60}:{total % 60:02d}"
