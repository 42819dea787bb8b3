"""
Shared test fixtures for the Dealer Portal backend tests.
"""
import os
import sys
import secrets
import shutil
import pytest

# ── Python path setup ──────────────────────────────────────────────────────────
_BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

# ── Sample data folder ─────────────────────────────────────────────────────────
# Georgia (id 1) carries a complete October, a partial November and an
# unparseable December shift file; Armenia (id 2) has no exports.
FIXTURES_DATA = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures", "data")

PASSWORD = "Test1234"

USERS = {
    'global_admin': {'ID': 1, 'NAME': 'gadmin', 'full_name': 'Global Admin', 'country_id': '1'},
    'admin': {'ID': 2, 'NAME': 'admin', 'full_name': 'Ana Admin', 'country_id': '1'},
    'operation': {'ID': 3, 'NAME': 'ops', 'full_name': 'Oto Operation', 'country_id': '1'},
    'dealer': {'ID': 4, 'NAME': 'nino', 'full_name': 'Nino Beridze', 'country_id': '1'},
    'sm': {'ID': 5, 'NAME': 'levan', 'full_name': 'Levan Tsiklauri', 'country_id': '1'},
}


# ── Session token helpers ──────────────────────────────────────────────────────

def inject_token(role: str, **overrides) -> str:
    """Put a session for role into _sessions and return its token."""
    from api.main import _sessions
    user = dict(USERS[role], role=role)
    user.update(overrides)
    first, _, last = user['full_name'].partition(' ')
    user.setdefault('first_name', first)
    user.setdefault('surname', last)
    tok = secrets.token_hex(16)
    _sessions[tok] = user
    return tok


def remove_token(tok: str) -> None:
    from api.main import _sessions
    _sessions.pop(tok, None)


def auth_headers(token: str) -> dict:
    return {'X-Auth-Token': token}


# ── Data folder fixtures ───────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def test_data_path(tmp_path_factory):
    """Session-scoped: copies the sample data folder to a temp dir."""
    base = tmp_path_factory.mktemp("roster_data")
    dst = base / "data"
    shutil.copytree(FIXTURES_DATA, str(dst))
    return str(dst)


@pytest.fixture(scope="session")
def patched_data(test_data_path):
    """Session-scoped: points api.main.DATA_PATH at the temp data folder."""
    import api.main as main_module
    original = main_module.DATA_PATH
    main_module.DATA_PATH = test_data_path
    yield test_data_path
    main_module.DATA_PATH = original


@pytest.fixture
def write_data_path(tmp_path, patched_data):
    """Function-scoped: fresh data copy per test, for endpoints that write config."""
    dst = tmp_path / "data"
    shutil.copytree(FIXTURES_DATA, str(dst))
    data_path = str(dst)

    import api.main as main_module
    original = main_module.DATA_PATH
    main_module.DATA_PATH = data_path
    yield data_path
    main_module.DATA_PATH = original


@pytest.fixture(scope="session")
def app(patched_data):
    """Return the FastAPI app pointed at the sample data folder."""
    from api.main import app as _app
    return _app


@pytest.fixture(autouse=True)
def _reset_rate_limits():
    """Every test starts with empty slowapi counters and no login lockouts."""
    from api.main import limiter
    from api.dependencies import _failed_logins
    limiter.reset()
    _failed_logins.clear()
    yield


@pytest.fixture(scope="session")
def sync_client(app):
    """Session-scoped TestClient without credentials."""
    from starlette.testclient import TestClient
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


# ── Role tokens ────────────────────────────────────────────────────────────────

def _token_fixture(role):
    @pytest.fixture
    def _fixture():
        tok = inject_token(role)
        yield tok
        remove_token(tok)
    return _fixture


global_admin_token = _token_fixture('global_admin')
admin_token = _token_fixture('admin')
operation_token = _token_fixture('operation')
dealer_token = _token_fixture('dealer')
sm_token = _token_fixture('sm')
