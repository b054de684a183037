import json
import random

import pytest

from drawbattle.game.registry import RoomRegistry
from drawbattle.game.service import GameService
from drawbattle.game.timers import TimerHandle
from drawbattle.judging.adapter import JudgeResult, JudgingAdapter
from drawbattle.server import create_app


PNG = "data:image/png;base64,iVBORw0KGgo="
PNG_2 = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUg=="


class ManualScheduler:
    """Scheduler double: timers fire only when a test says so."""

    def __init__(self):
        self.pending = []
        self.spawned = []
        self.run_spawned = True

    def call_later(self, delay_ms, callback, *args):
        handle = TimerHandle()
        self.pending.append((delay_ms, handle, callback, args))
        return handle

    def spawn(self, fn, *args):
        if self.run_spawned:
            fn(*args)
        else:
            self.spawned.append((fn, args))

    def active(self):
        return [t for t in self.pending if not t[1].cancelled]

    def fire_next(self):
        while self.pending:
            _, handle, callback, args = self.pending.pop(0)
            if not handle.cancelled:
                callback(*args)
                return True
        return False

    def fire_ignoring_cancel(self, index=0):
        # Simulates a callback that was already in flight when cancelled.
        _, _, callback, args = self.pending.pop(index)
        callback(*args)

    def run_spawned_tasks(self):
        tasks, self.spawned = self.spawned, []
        for fn, args in tasks:
            fn(*args)


class RecordingEmitter:
    def __init__(self):
        self.events = []

    def __call__(self, event, data=None, to=None, **kwargs):
        self.events.append((event, data, to))

    def named(self, event):
        return [data for name, data, _ in self.events if name == event]

    def names(self):
        return [name for name, _, _ in self.events]

    def clear(self):
        self.events = []


class StubJudge:
    available = True

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else JudgeResult()
        self.error = error
        self.calls = []

    def judge(self, prompt, submissions):
        self.calls.append((prompt, dict(submissions)))
        if self.error is not None:
            raise self.error
        return self.result


class FakeVisionClient:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def request_judgment(self, prompt, submissions):
        self.calls.append((prompt, dict(submissions)))
        if self.error is not None:
            raise self.error
        if isinstance(self.response, dict):
            return json.dumps(self.response)
        return self.response


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def judge():
    return StubJudge()


@pytest.fixture()
def registry():
    return RoomRegistry(code_length=4, rng=random.Random(7))


@pytest.fixture()
def service(registry, scheduler, judge, emitter):
    return GameService(
        registry=registry,
        scheduler=scheduler,
        judge=judge,
        emit=emitter,
        prompts=["Apple"],
        grace_period_ms=1500,
    )


class TestConfig:
    TESTING = True
    SECRET_KEY = "test-secret"
    CORS_ORIGINS = "*"
    TRUST_PROXY_HEADERS = False
    SOCKETIO_ASYNC_MODE = "threading"
    GEMINI_API_KEY = ""
    GEMINI_MODEL = "test-model"
    JUDGE_TIMEOUT_SEC = 5
    DRAW_TIME_MS = 30000
    TOTAL_ROUNDS = 3
    GRACE_PERIOD_MS = 1500
    ROOM_CODE_LENGTH = 4
    PROMPTS_FILE = None


@pytest.fixture()
def vision_client():
    return FakeVisionClient(response={"scores": {}, "comments": {}})


@pytest.fixture()
def app_and_socketio(scheduler, vision_client):
    return create_app(TestConfig, judge=JudgingAdapter(vision_client), scheduler=scheduler)


@pytest.fixture()
def flask_app(app_and_socketio):
    return app_and_socketio[0]


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(app_and_socketio):
    app, socketio = app_and_socketio
    clients = []

    def _make():
        test_client = socketio.test_client(app, flask_test_client=app.test_client())
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        try:
            if test_client.is_connected():
                test_client.disconnect()
        except Exception:
            pass
