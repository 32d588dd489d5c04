import os
import random
import sys

import pytest

# Ensure the backend root (containing the `chessvote` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from chessvote.config import Config
from chessvote.game.registry import RoomRegistry
from chessvote.game.service import RoomService
from chessvote.server import create_app


class RecordingGateway:
    """Collects broadcasts instead of sending them."""

    def __init__(self):
        self.sent = []

    def emit(self, room_id, event, payload=None):
        self.sent.append((room_id, event, payload))

    def names(self, room_id=None):
        return [e for r, e, _ in self.sent if room_id is None or r == room_id]

    def payloads(self, event):
        return [p for _, e, p in self.sent if e == event]

    def last(self, event):
        found = self.payloads(event)
        return found[-1] if found else None

    def clear(self):
        self.sent = []


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    SOCKETIO_ASYNC_MODE = 'threading'
    TRUST_PROXY_HEADERS = False
    CORS_ORIGINS = ['http://localhost:5173']
    ENABLE_TIMER_TASKS = False
    DEFAULT_TIMER_LENGTH = 10
    DEFAULT_REVEAL_AT = 3


@pytest.fixture()
def gateway():
    return RecordingGateway()


@pytest.fixture()
def service(gateway):
    svc = RoomService(RoomRegistry(), gateway, rng=random.Random(1234))
    yield svc
    svc.close()


@pytest.fixture()
def app_pair():
    application, sio = create_app(TestConfig)
    yield application, sio
    application.extensions['chessvote'].close()


@pytest.fixture()
def flask_app(app_pair):
    return app_pair[0]


@pytest.fixture()
def socketio(app_pair):
    return app_pair[1]


@pytest.fixture()
def app_service(flask_app):
    return flask_app.extensions['chessvote']


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_sio_client(flask_app, socketio):
    clients = []

    def _make():
        c = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(c)
        return c

    yield _make
    for c in clients:
        try:
            c.disconnect()
        except Exception:
            pass
