#!/usr/bin/env python3
"""
Tests for the liftcycle HTTP service.

Run with: pytest service/tests/test_service.py -v
"""

import sys
from pathlib import Path

import pytest

# Add service directory to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


@pytest.fixture
def app(tmp_path):
    """Flask app writing to a temporary data directory."""
    from app import app as flask_app
    flask_app.config['TESTING'] = True
    flask_app.config['DATA_DIR'] = str(tmp_path / 'data')
    flask_app.config['DEFAULT_ENVIRONMENT'] = None
    return flask_app


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


def _session(template_id, day, exercises=None):
    return {
        'date': f'2025-03-{day:02d}T18:00:00Z',
        'templateId': template_id,
        'restDay': False,
        'exercises': exercises or [],
    }


def _train(client, *template_ids):
    for day, template_id in enumerate(template_ids, start=1):
        response = client.post('/sessions', json=_session(template_id, day))
        assert response.status_code == 201


# =============================================================================
# HEALTH & HEADERS
# =============================================================================

class TestHealth:

    def test_health(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        data = response.get_json()
        assert data['status'] == 'ok'
        assert data['service'] == 'liftcycle'

    def test_security_headers(self, client):
        response = client.get('/health')
        assert response.headers['X-Content-Type-Options'] == 'nosniff'
        assert response.headers['X-Frame-Options'] == 'DENY'
        assert response.headers['X-XSS-Protection'] == '1; mode=block'


# =============================================================================
# SCHEDULING
# =============================================================================

class TestNextSession:

    def test_fresh_start(self, client):
        data = client.get('/next-session').get_json()
        assert data['templateId'] == 'upper_a'
        assert data['isOptionalOffer'] is False
        assert data['restRecommended'] is False

    def test_bonus_offer_and_decline(self, client):
        _train(client, 'upper_a', 'lower_a', 'upper_b', 'lower_b')

        offer = client.get('/next-session').get_json()
        assert offer['templateId'] == 'upper_c'
        assert offer['isOptionalOffer'] is True
        assert offer['restRecommended'] is True

        declined = client.post('/next-session/decline').get_json()
        assert declined['templateId'] == 'upper_a'
        assert declined['isOptionalOffer'] is False

        assert client.get('/next-session').get_json()['templateId'] == 'upper_a'

    def test_rest_day(self, client):
        _train(client, 'upper_a')
        response = client.post('/rest-days', json={'date': '2025-03-02'})
        assert response.status_code == 201
        assert response.get_json()['restDay'] is True

        data = client.get('/next-session').get_json()
        assert data['templateId'] == 'lower_a'
        assert data['consecutiveCount'] == 0

    def test_invalid_rest_day_date(self, client):
        response = client.post('/rest-days', json={'date': 'someday'})
        assert response.status_code == 400


# =============================================================================
# TARGETS, PLANS, VARIANTS
# =============================================================================

class TestTargets:

    def test_slot_target(self, client):
        client.post('/sessions', json=_session('upper_a', 1, [{
            'exerciseId': 'upper_a_incline_press',
            'variantName': 'Smith Incline Press',
            'setsPerformed': [{'weight': 40, 'reps': 10}],
        }]))
        data = client.get('/slots/upper_a_incline_press/target').get_json()
        assert data['exerciseId'] == 'upper_a_incline_press'
        assert data['suggestedWeight'] == 42.5
        assert data['suggestedReps'] == [6, 10]

    def test_unknown_slot_is_404(self, client):
        response = client.get('/slots/bench_press/target')
        assert response.status_code == 404
        assert 'bench_press' in response.get_json()['error']

    def test_slot_summary(self, client):
        data = client.get('/slots/upper_a_incline_press/summary').get_json()
        assert data['sessionsLogged'] == 0
        assert data['bestSet'] is None

    def test_plan(self, client):
        data = client.get('/sessions/plan?templateId=lower_b').get_json()
        assert data['templateId'] == 'lower_b'
        assert len(data['slots']) == 5

    def test_plan_unknown_template(self, client):
        assert client.get('/sessions/plan?templateId=push_day').status_code == 404

    def test_variants_for_home(self, client):
        data = client.get('/patterns/lateral_raise/variants?environment=home').get_json()
        assert data['variants'] == [{'name': 'Band Lateral Raise', 'tags': ['home', 'apartment']}]

    def test_unknown_pattern_is_404(self, client):
        assert client.get('/patterns/bench/variants').status_code == 404

    def test_session_progress(self, client):
        response = client.post('/sessions/progress', json={
            'templateId': 'upper_c',
            'exercises': [{'exerciseId': 'upper_c_lateral_raise', 'setsPerformed': [{'weight': 5, 'reps': 20}]}],
        })
        data = response.get_json()
        assert data['nextExerciseId'] == 'upper_c_lateral_raise'
        assert data['slots'][0]['loggedSets'] == 1

    def test_session_progress_requires_template(self, client):
        assert client.post('/sessions/progress', json={}).status_code == 400


# =============================================================================
# RECORDING, EXPORT, IMPORT
# =============================================================================

class TestSessions:

    def test_record_and_list(self, client):
        response = client.post('/sessions', json=_session('upper_a', 1))
        assert response.status_code == 201
        assert response.get_json()['id'].startswith('wor_')

        sessions = client.get('/sessions').get_json()['sessions']
        assert [s['templateId'] for s in sessions] == ['upper_a']

    def test_list_returns_stored_records(self, client):
        record = _session('upper_a', 1, [
            {'exerciseId': 'old_bench_press', 'variantName': 'Bench Press',
             'setsPerformed': [{'weight': 60, 'reps': 8}]},
            {'exerciseId': 'upper_a_incline_press', 'variantName': 'Développé incliné',
             'setsPerformed': [{'weight': 40, 'reps': 10}]},
        ])
        stored = client.post('/sessions', json=record).get_json()

        sessions = client.get('/sessions').get_json()['sessions']
        assert sessions == [stored]
        assert sessions[0]['date'] == '2025-03-01T18:00:00Z'
        assert [e['exerciseId'] for e in sessions[0]['exercises']] == ['old_bench_press', 'upper_a_incline_press']
        assert sessions[0]['exercises'][1]['variantName'] == 'Développé incliné'

    def test_performed_slot_without_variant_rejected(self, client):
        response = client.post('/sessions', json=_session('upper_a', 1, [{
            'exerciseId': 'upper_a_incline_press',
            'setsPerformed': [{'weight': 40, 'reps': 10}],
        }]))
        assert response.status_code == 400
        assert 'upper_a_incline_press' in response.get_json()['error']
        assert client.get('/sessions').get_json()['sessions'] == []

    def test_invalid_json(self, client):
        response = client.post('/sessions', data='not json', content_type='application/json')
        assert response.status_code == 400

    def test_unknown_template_rejected(self, client):
        response = client.post('/sessions', json=_session('push_day', 1))
        assert response.status_code == 400
        assert 'push_day' in response.get_json()['error']

    def test_malformed_record_rejected(self, client):
        response = client.post('/sessions', json={'templateId': 'upper_a'})
        assert response.status_code == 400


class TestExportImport:

    def test_export(self, client):
        _train(client, 'upper_a')
        data = client.get('/export').get_json()
        assert data['app'] == 'LifeOS'
        assert len(data['collections']['workoutSessions']) == 1

    def test_import_merge(self, client):
        _train(client, 'upper_a')
        payload = client.get('/export').get_json()
        payload['collections']['workoutSessions'].append({**_session('lower_a', 2), 'id': 'wor_imported'})

        response = client.post('/import', json=payload)
        assert response.status_code == 200
        assert response.get_json() == {'status': 'imported', 'overwrite': False}
        assert client.get('/next-session').get_json()['templateId'] == 'upper_b'

    def test_import_overwrite(self, client):
        _train(client, 'upper_a', 'lower_a')
        payload = client.get('/export').get_json()
        payload['collections']['workoutSessions'] = []

        response = client.post('/import?overwrite=true', json=payload)
        assert response.get_json()['overwrite'] is True
        assert client.get('/sessions').get_json()['sessions'] == []

    def test_import_rejects_other_apps(self, client):
        response = client.post('/import', json={'app': 'Other', 'schemaVersion': 1, 'collections': {}})
        assert response.status_code == 400

    def test_import_invalid_json(self, client):
        response = client.post('/import', data='{', content_type='application/json')
        assert response.status_code == 400
