"""
Flask web application for Knockout Duel.

Holds the single "current tournament" for a data directory and exposes the
engine over a small JSON API. Every read-modify-write of the saved session
runs under a file lock so concurrent picks cannot race on a stale snapshot.
"""
import os
import logging
import yaml
from filelock import FileLock
from flask import Flask, request, jsonify
from knockout.engine import create_tournament, current_matchup, settle, try_pick
from knockout.entrants import clean_entrants
from knockout.progress import bracket_display, champion_share_text, progress_label, totals
from knockout.snapshot import SnapshotError, dump_session, entrant_to_dict, load_session, tournament_to_dict

app = Flask(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

SETTINGS_FILE = os.path.join(DATA_DIR, 'settings.yaml')
SESSION_FILE = os.path.join(DATA_DIR, 'session.yaml')
LOCK_TIMEOUT_SECONDS = 10


def get_default_settings() -> dict:
    """Default settings used when settings.yaml is missing or incomplete."""
    return {
        'tournament_name': 'Knockout Duel',
        'max_entrants': 2000,
    }


def _data_lock() -> FileLock:
    os.makedirs(DATA_DIR, exist_ok=True)
    return FileLock(os.path.join(DATA_DIR, '.lock'), timeout=LOCK_TIMEOUT_SECONDS)


def _is_valid_limit(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


def load_settings() -> dict:
    """Load settings from YAML, filling in defaults for missing keys."""
    settings = get_default_settings()
    if not os.path.exists(SETTINGS_FILE):
        return settings
    try:
        with open(SETTINGS_FILE, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        app.logger.warning(f'Failed to parse {SETTINGS_FILE}: {e}')
        return settings
    if isinstance(data, dict):
        settings.update(data)
    if not _is_valid_limit(settings.get('max_entrants')):
        app.logger.warning(f'Ignoring invalid max_entrants in {SETTINGS_FILE}: {settings.get("max_entrants")!r}')
        settings['max_entrants'] = get_default_settings()['max_entrants']
    if not isinstance(settings.get('tournament_name'), str) or not settings['tournament_name'].strip():
        settings['tournament_name'] = get_default_settings()['tournament_name']
    return settings


def save_settings(settings: dict):
    """Save settings to YAML file."""
    os.makedirs(DATA_DIR, exist_ok=True)
    with open(SETTINGS_FILE, 'w', encoding='utf-8') as f:
        yaml.dump(settings, f, default_flow_style=False)


def load_session_file():
    """
    Load the saved session.

    Returns (tournament, entrants, meta), or None when nothing usable is saved.
    """
    if not os.path.exists(SESSION_FILE):
        return None
    try:
        with open(SESSION_FILE, 'r', encoding='utf-8') as f:
            return load_session(f.read())
    except (OSError, SnapshotError) as e:
        app.logger.warning(f'Failed to restore {SESSION_FILE}: {e}')
        return None


def save_session_file(tournament, entrants, name: str = ''):
    """Write the session atomically so readers never see a partial file."""
    os.makedirs(DATA_DIR, exist_ok=True)
    tmp_path = SESSION_FILE + '.tmp'
    try:
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(dump_session(tournament, entrants, name=name))
        os.replace(tmp_path, SESSION_FILE)
    except Exception:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


def _state_payload(tournament, meta: dict) -> dict:
    progress = totals(tournament)
    matchup = current_matchup(tournament)
    return {
        'success': True,
        'name': meta.get('name', ''),
        'saved_at': meta.get('saved_at'),
        'label': progress_label(tournament),
        'progress': {'done': progress.done, 'total': progress.total},
        'rounds_built': len(tournament.rounds),
        'matchup': None if matchup is None else {
            'kind': matchup.kind,
            'a': entrant_to_dict(matchup.a),
            'b': entrant_to_dict(matchup.b),
            'waiting': entrant_to_dict(matchup.waiting),
        },
        'champion': entrant_to_dict(tournament.champion),
        'tournament': tournament_to_dict(tournament),
    }


def _no_tournament():
    return jsonify({'success': False, 'error': 'No tournament in progress'}), 404


@app.route('/api/tournament', methods=['GET'])
def api_get_tournament():
    """Current snapshot plus derived progress, label and matchup."""
    session_data = load_session_file()
    if session_data is None:
        return _no_tournament()
    tournament, _entrants, meta = session_data
    return jsonify(_state_payload(tournament, meta))


@app.route('/api/tournament', methods=['POST'])
def api_create_tournament():
    """Start a new tournament from a list of entrant records.

    Requires: entrants (list) in JSON body. Optional: name.
    Replaces any saved session.
    """
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'No data provided'}), 400

    records = data.get('entrants')
    if not isinstance(records, list):
        return jsonify({'success': False, 'error': 'Entrants must be a list'}), 400

    settings = load_settings()
    entrants = clean_entrants(records, limit=settings.get('max_entrants'))
    if not entrants:
        return jsonify({'success': False, 'error': 'No usable entrants provided'}), 400

    name = str(data.get('name') or settings.get('tournament_name') or '').strip()
    tournament = create_tournament(entrants)
    with _data_lock():
        save_session_file(tournament, entrants, name=name)
    app.logger.info(f'Started tournament "{name}" with {len(entrants)} entrants')
    return jsonify(_state_payload(tournament, {'name': name})), 201


@app.route('/api/pick', methods=['POST'])
def api_pick():
    """Apply one decision at the current cursor.

    Requires: side ('a' or 'b') in JSON body.
    """
    data = request.get_json(silent=True) or {}
    side = data.get('side')
    if side is None:
        return jsonify({'success': False, 'error': 'Missing side'}), 400

    with _data_lock():
        session_data = load_session_file()
        if session_data is None:
            return _no_tournament()
        tournament, entrants, meta = session_data
        try:
            result = try_pick(tournament, side)
        except ValueError as e:
            return jsonify({'success': False, 'error': str(e)}), 400
        if not result.applied:
            return jsonify({
                'success': False,
                'error': 'Pick rejected',
                'status': result.status.value,
            }), 409
        save_session_file(result.tournament, entrants, name=meta.get('name', ''))

    return jsonify(_state_payload(result.tournament, meta))


@app.route('/api/fast-forward', methods=['POST'])
def api_fast_forward():
    """Collapse any rounds that need no decision."""
    with _data_lock():
        session_data = load_session_file()
        if session_data is None:
            return _no_tournament()
        tournament, entrants, meta = session_data
        settled = settle(tournament)
        if settled != tournament:
            save_session_file(settled, entrants, name=meta.get('name', ''))
    return jsonify(_state_payload(settled, meta))


@app.route('/api/bracket', methods=['GET'])
def api_bracket():
    """Every round built so far, formatted for bracket display."""
    session_data = load_session_file()
    if session_data is None:
        return _no_tournament()
    tournament, _entrants, meta = session_data
    display = bracket_display(tournament)
    display['success'] = True
    display['name'] = meta.get('name', '')
    return jsonify(display)


@app.route('/api/champion', methods=['GET'])
def api_champion():
    """The champion and a share line, once the tournament is finished."""
    session_data = load_session_file()
    if session_data is None:
        return _no_tournament()
    tournament, _entrants, meta = session_data
    if tournament.champion is None:
        return jsonify({'success': False, 'error': 'No champion yet'}), 404
    return jsonify({
        'success': True,
        'champion': entrant_to_dict(tournament.champion),
        'share_text': champion_share_text(tournament, meta.get('name') or None),
        'decisions': len(tournament.history),
    })


@app.route('/api/settings', methods=['GET'])
def api_get_settings():
    return jsonify({'success': True, 'settings': load_settings()})


@app.route('/api/settings/update', methods=['POST'])
def api_update_settings():
    """Update tournament_name and/or max_entrants."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'success': False, 'error': 'No data provided'}), 400

    settings = load_settings()
    if 'tournament_name' in data:
        name = data['tournament_name']
        if not isinstance(name, str) or not name.strip():
            return jsonify({'success': False, 'error': 'Tournament name must be a non-empty string'}), 400
        settings['tournament_name'] = name.strip()
    if 'max_entrants' in data:
        limit = data['max_entrants']
        if not _is_valid_limit(limit):
            return jsonify({'success': False, 'error': 'max_entrants must be a positive integer'}), 400
        settings['max_entrants'] = limit

    with _data_lock():
        save_settings(settings)
    return jsonify({'success': True, 'settings': settings})


@app.route('/api/reset', methods=['POST'])
def api_reset():
    """Clear the saved session."""
    with _data_lock():
        if os.path.exists(SESSION_FILE):
            os.remove(SESSION_FILE)
    app.logger.info('Session reset')
    return jsonify({'success': True})


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True, port=5000)
