"""Tests for RBAC: per-role file access, country scoping and personal views."""
import secrets
import pytest
from starlette.testclient import TestClient


# ── Role injection helpers ─────────────────────────────────────────────────────

def _inject_token(role: str, name: str, full_name: str, country_id: str = '1') -> str:
    """Inject a session token with the given role into _sessions and return it."""
    from api.main import _sessions
    tok = secrets.token_hex(16)
    _sessions[tok] = {
        'ID': 900, 'NAME': name, 'role': role,
        'full_name': full_name, 'country_id': country_id,
    }
    return tok


def _remove_token(tok: str) -> None:
    from api.main import _sessions
    _sessions.pop(tok, None)


def _h(token: str) -> dict:
    return {'X-Auth-Token': token}


@pytest.fixture
def armenian_operation_token():
    tok = _inject_token('operation', 'aram', 'Aram Petrosyan', country_id='2')
    yield tok
    _remove_token(tok)


@pytest.fixture
def other_dealer_token():
    tok = _inject_token('dealer', 'giorgi', 'Giorgi Kapanadze')
    yield tok
    _remove_token(tok)


# ── Unauthenticated ────────────────────────────────────────────────────────────

class TestUnauthenticated:
    @pytest.mark.parametrize('path', [
        '/api/countries',
        '/api/countries/1/months',
        '/api/schedule/1/October',
        '/api/daily-stats/1/October',
        '/api/mistake-stats/1/October',
        '/api/shift-color?code=X',
        '/api/config/visible-months/1',
        '/api/auth/me',
    ])
    def test_requires_auth(self, app, path):
        with TestClient(app, raise_server_exceptions=False) as raw:
            assert raw.get(path).status_code == 401

    def test_cache_invalidate_requires_auth(self, app):
        with TestClient(app, raise_server_exceptions=False) as raw:
            assert raw.post('/api/cache/invalidate').status_code == 401


# ── File types per role ────────────────────────────────────────────────────────

class TestFileAccess:
    @pytest.mark.parametrize('role_fixture,staff,expected', [
        ('dealer_token', 'dealer', 200),
        ('dealer_token', 'sm', 403),
        ('sm_token', 'dealer', 403),
        ('sm_token', 'sm', 200),
        ('operation_token', 'dealer', 200),
        ('operation_token', 'sm', 200),
        ('admin_token', 'sm', 200),
        ('global_admin_token', 'dealer', 200),
    ])
    def test_schedule_staff_matrix(self, request, sync_client, role_fixture, staff, expected):
        token = request.getfixturevalue(role_fixture)
        res = sync_client.get(f'/api/schedule/1/October?staff={staff}', headers=_h(token))
        assert res.status_code == expected

    @pytest.mark.parametrize('role_fixture', ['dealer_token', 'sm_token', 'operation_token'])
    def test_statistics_open_to_every_role(self, request, sync_client, role_fixture):
        token = request.getfixturevalue(role_fixture)
        assert sync_client.get('/api/daily-stats/1/October', headers=_h(token)).status_code == 200
        assert sync_client.get('/api/mistake-stats/1/October', headers=_h(token)).status_code == 200


# ── Country scoping ────────────────────────────────────────────────────────────

class TestCountryScope:
    def test_foreign_country_forbidden(self, sync_client, armenian_operation_token):
        res = sync_client.get('/api/schedule/1/October', headers=_h(armenian_operation_token))
        assert res.status_code == 403
        assert 'detail' in res.json()

    def test_own_country_listed(self, sync_client, armenian_operation_token):
        res = sync_client.get('/api/countries', headers=_h(armenian_operation_token))
        assert [c['name'] for c in res.json()] == ['Armenia']

    def test_own_country_months(self, sync_client, armenian_operation_token):
        res = sync_client.get('/api/countries/2/months', headers=_h(armenian_operation_token))
        assert res.status_code == 200
        assert res.json()['months'] == []

    def test_global_admin_reads_any_country(self, sync_client, global_admin_token):
        res = sync_client.get('/api/countries/2/months', headers=_h(global_admin_token))
        assert res.status_code == 200


# ── Personal views ─────────────────────────────────────────────────────────────

class TestPersonalViews:
    def test_each_dealer_sees_own_schedule(self, sync_client, dealer_token, other_dealer_token):
        mine = sync_client.get('/api/schedule/1/October', headers=_h(dealer_token)).json()
        theirs = sync_client.get('/api/schedule/1/October', headers=_h(other_dealer_token)).json()
        assert [r['name_surname'] for r in mine['shifts']['rows']] == ['Nino Beridze']
        assert [r['name_surname'] for r in theirs['shifts']['rows']] == ['Giorgi Kapanadze']
        assert theirs['working_hours']['pairs'][0]['sum_hours'] == 12.0

    def test_colors_follow_visible_rows(self, sync_client, other_dealer_token):
        data = sync_client.get('/api/schedule/1/October', headers=_h(other_dealer_token)).json()
        assert 'X1' in data['shifts']['colors']
        assert '08H!' not in data['shifts']['colors']

    def test_dealer_name_match_ignores_case(self, sync_client):
        tok = _inject_token('dealer', 'nino2', 'NINO BERIDZE')
        try:
            data = sync_client.get('/api/daily-stats/1/October', headers=_h(tok)).json()
            assert [r['name_surname'] for r in data['rows']] == ['Nino Beridze']
        finally:
            _remove_token(tok)

    def test_dealer_without_name_sees_nothing_personal(self, sync_client):
        tok = _inject_token('dealer', 'anon', '')
        try:
            data = sync_client.get('/api/daily-stats/1/October', headers=_h(tok)).json()
            assert data['rows'] == []
            assert data['total_row'] is None
        finally:
            _remove_token(tok)

    @pytest.mark.parametrize('role_fixture', ['operation_token', 'admin_token', 'global_admin_token'])
    def test_management_roles_see_total_row(self, request, sync_client, role_fixture):
        token = request.getfixturevalue(role_fixture)
        data = sync_client.get('/api/daily-stats/1/October', headers=_h(token)).json()
        assert data['total_row'] is not None
        assert len(data['rows']) == 2
