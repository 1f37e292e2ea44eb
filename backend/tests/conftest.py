import os
import random
import sys
import pytest

# Ensure the backend root (containing the `sketchparty` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from sketchparty import create_app, socketio
from sketchparty.errors import SendFailure
from sketchparty.services.game import (
    BroadcastDispatcher,
    GameServices,
    RoomRegistry,
    TurnEngine,
    WordList,
)


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SOCKETIO_NAMESPACE = '/ws'
    CORS_ORIGINS = ['http://localhost:5173']
    MIN_PLAYERS = 2
    DEFAULT_NICKNAME = 'Anonymous'
    ROOM_CODE_LENGTH = 4
    ROOM_CODE_ALPHABET = '0123456789'
    ROOM_CODE_MAX_ATTEMPTS = 100
    PRUNE_EMPTY_ROOMS = False
    WORDS = ['apple']


class FakeConnection:
    """In-memory Connection: records what it was sent, can be told to fail."""

    def __init__(self, name, fail=False):
        self.name = name
        self.fail = fail
        self.sent = []
        self.closed = False

    def send(self, message):
        if self.fail or self.closed:
            raise SendFailure(self, 'broken pipe')
        self.sent.append(message)

    def close(self):
        self.closed = True

    def types(self):
        return [m.type for m in self.sent]

    def last(self, type_):
        matches = [m for m in self.sent if m.type == type_]
        return matches[-1] if matches else None

    def __repr__(self):
        return f'FakeConnection({self.name!r})'


@pytest.fixture()
def registry():
    return RoomRegistry(rng=random.Random(7))


@pytest.fixture()
def words():
    return WordList(['apple', 'banana', 'cherry'])


@pytest.fixture()
def engine(words):
    return TurnEngine(words, rng=random.Random(11))


@pytest.fixture()
def dispatcher(registry):
    return BroadcastDispatcher(registry)


@pytest.fixture()
def services(registry, engine, dispatcher):
    return GameServices(registry, engine, dispatcher)


@pytest.fixture()
def connect(services):
    """Open a session for a fresh fake connection."""
    def _connect(name, fail=False):
        conn = FakeConnection(name, fail=fail)
        return conn, services.open_session(conn)
    return _connect


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


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
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
