import os
import sys
import pytest

# Ensure the backend root (containing the `cookoff` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from cookoff import create_app, db, socketio
from cookoff.services.games import roster
from cookoff.services.games.documents import new_session_document


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    DEFAULT_SIMULTANEOUS_PLAYERS = 2
    DEFAULT_ROUND_TIME_SEC = 300
    MAX_SIMULTANEOUS_PLAYERS = 8
    RESULTS_COUNTDOWN_SEC = 10
    RESULTS_FLASH_SEC = 5
    SHUFFLE_ITERATIONS = 5
    SHUFFLE_DELAY_MS = 500
    SESSION_CODE_ATTEMPTS = 10
    VOTE_TRANSACTION_ATTEMPTS = 5
    PRESENCE_TIMEOUT_SEC = 60
    HEARTBEAT_INTERVAL_SEC = 30


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import cookoff.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def reset_realtime_state():
    # Presence and scheduler bookkeeping are module-level
    from cookoff import socketio_events
    from cookoff.services.games import scheduler
    from cookoff.store import store
    yield
    socketio_events._sid_to_ctx.clear()
    socketio_events._last_seen.clear()
    scheduler._countdowns.clear()
    store._listeners.clear()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    if test_client.is_connected('/ws'):
        test_client.disconnect(namespace='/ws')


@pytest.fixture()
def make_document():
    """Build a SETUP-phase document with the given chefs (and optional judges).

    Participant ids are the lower-cased names so tests can refer to them.
    """
    def _make(chefs=(), judges=(), simultaneous_players=2, round_time=300, now=1000.0):
        doc = new_session_document(simultaneous_players, round_time, now)
        for name in chefs:
            doc, _ = roster.add_participant(doc, name, f'{name} dish', participant_id=name.lower())
        for name in judges:
            doc, _ = roster.add_participant(doc, name, is_judge=True, participant_id=name.lower())
        return doc
    return _make
