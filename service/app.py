"""
liftcycle HTTP service

JSON API over the workout engine: next session, targets, variants,
session recording and LifeOS export/import.

Run locally: python3 service/app.py  (PORT, FLASK_DEBUG env vars)
"""

import os
import sys
from functools import wraps
from pathlib import Path

from flask import Flask, jsonify, request

# Engine modules live in lifting/scripts
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / 'lifting' / 'scripts'))

from config_loader import get_config
from constants import SESSIONS_COLLECTION
from errors import ConfigurationError, HistoryInconsistency, ImportPayloadError
from logger import get_logger
from session_store import CollectionStore
from workout_config import load_workout_config
from workout_engine import WorkoutEngine

app = Flask(__name__)
logger = get_logger()

# =============================================================================
# CONFIGURATION - Fail fast if the workout configuration is invalid
# =============================================================================

config = get_config()
logger.set_level(config.get('logging.level', 'INFO'))
if config.get('logging.format') == 'json':
    logger.set_json_mode(True)

# Raises ConfigurationError / InvalidTarget at import; the service never starts
# with a broken configuration
WORKOUT_CONFIG = load_workout_config()

app.config['DATA_DIR'] = str(config.get_data_dir())
app.config['DEFAULT_ENVIRONMENT'] = config.get('training.default_environment') or None

logger.info(
    "Service configured",
    data_dir=app.config['DATA_DIR'],
    templates=len(WORKOUT_CONFIG.templates),
)


def get_engine() -> WorkoutEngine:
    return WorkoutEngine(WORKOUT_CONFIG, CollectionStore(Path(app.config['DATA_DIR'])))


# =============================================================================
# SECURITY HEADERS
# =============================================================================

@app.after_request
def set_security_headers(response):
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['X-XSS-Protection'] = '1; mode=block'
    response.headers['Cache-Control'] = 'no-store'
    return response


# =============================================================================
# ERROR MAPPING
# =============================================================================

def json_errors(view):
    """Map engine errors to JSON responses: bad input 400, unknown id 404, anything else 500."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except (HistoryInconsistency, ImportPayloadError) as e:
            logger.warning(f"Rejected request: {e}", path=request.path)
            return jsonify({'error': str(e)}), 400
        except ConfigurationError as e:
            return jsonify({'error': str(e)}), 404
        except Exception as e:
            logger.exception(f"Unhandled error on {request.path}: {e}")
            return jsonify({'error': 'Internal server error'}), 500
    return wrapper


def _environment_arg():
    return request.args.get('environment') or app.config['DEFAULT_ENVIRONMENT']


def _flag_arg(name: str) -> bool:
    return request.args.get(name, 'false').lower() in ('1', 'true', 'yes')


# =============================================================================
# ROUTES
# =============================================================================

@app.route('/health', methods=['GET'])
def health():
    """Health check endpoint."""
    data_dir = Path(app.config['DATA_DIR'])
    checks = {
        'service': 'liftcycle',
        'status': 'ok',
        'data_dir': data_dir.exists() or data_dir.parent.exists(),
        'templates': len(WORKOUT_CONFIG.templates),
    }

    if not checks['data_dir']:
        checks['status'] = 'degraded'

    status_code = 200 if checks['status'] == 'ok' else 503
    return jsonify(checks), status_code


@app.route('/next-session', methods=['GET'])
@json_errors
def next_session():
    return jsonify(get_engine().next_session())


@app.route('/next-session/decline', methods=['POST'])
@json_errors
def decline_bonus():
    """Decline the optional bonus session; the cycle continues."""
    return jsonify(get_engine().decline_bonus_offer())


@app.route('/sessions/plan', methods=['GET'])
@json_errors
def session_plan():
    template_id = request.args.get('templateId') or None
    return jsonify(get_engine().session_plan(template_id, _environment_arg()))


@app.route('/sessions/progress', methods=['POST'])
@json_errors
def session_progress():
    data = request.get_json(silent=True)
    if not isinstance(data, dict) or not data.get('templateId'):
        return jsonify({'error': 'templateId is required'}), 400

    exercises = data.get('exercises') or []
    try:
        result = get_engine().session_progress(data['templateId'], exercises, data.get('currentExerciseId'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(result)


@app.route('/slots/<exercise_id>/target', methods=['GET'])
@json_errors
def slot_target(exercise_id):
    target = get_engine().slot_target(exercise_id)
    return jsonify({'exerciseId': exercise_id, **target.to_dict()})


@app.route('/slots/<exercise_id>/summary', methods=['GET'])
@json_errors
def slot_summary(exercise_id):
    return jsonify(get_engine().exercise_summary(exercise_id))


@app.route('/patterns/<pattern_id>/variants', methods=['GET'])
@json_errors
def pattern_variants(pattern_id):
    environment = _environment_arg()
    variants = get_engine().eligible_variants(pattern_id, environment)
    return jsonify({
        'patternId': pattern_id,
        'environment': environment,
        'variants': [v.to_dict() for v in variants],
    })


@app.route('/sessions', methods=['GET'])
@json_errors
def list_sessions():
    """Stored session records, exactly as persisted."""
    return jsonify({'sessions': get_engine().store.get_collection(SESSIONS_COLLECTION)})


@app.route('/sessions', methods=['POST'])
@json_errors
def record_session():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'Invalid JSON'}), 400
    return jsonify(get_engine().complete_session(data)), 201


@app.route('/rest-days', methods=['POST'])
@json_errors
def record_rest_day():
    data = request.get_json(silent=True)
    date = data.get('date') if isinstance(data, dict) else None
    return jsonify(get_engine().log_rest_day(date)), 201


@app.route('/export', methods=['GET'])
@json_errors
def export_data():
    return jsonify(get_engine().store.export_all())


@app.route('/import', methods=['POST'])
@json_errors
def import_data():
    payload = request.get_json(silent=True)
    if payload is None:
        return jsonify({'error': 'Invalid JSON'}), 400

    overwrite = _flag_arg('overwrite')
    get_engine().store.import_all(payload, overwrite=overwrite)
    return jsonify({'status': 'imported', 'overwrite': overwrite})


# =============================================================================
# MAIN
# =============================================================================

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8080))
    debug = os.environ.get('FLASK_DEBUG', 'false').lower() == 'true'
    app.run(host='127.0.0.1', port=port, debug=debug)
