import pytest
from unittest.mock import MagicMock

import fastapi
from fastapi.testclient import TestClient

from pendant import utils
from pendant.routers.health import factory as health_factory
from pendant.routers.jog import factory as jog_factory
from pendant.schemas.macros import MacroName
from pendant.schemas.macros import MacroTable
from pendant.services.jog_controller import JogController

class FakeTimer:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True

class FakeScheduler:
    """
    Virtual clock with the call_later surface of an asyncio loop.
    """

    def __init__(self):
        self.now = 0.0
        self.timers = []

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(self.now + delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [timer for timer in self.timers if not timer.cancelled]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [timer for timer in self.pending if timer.when <= target + 1e-9]
            if not due:
                break
            timer = min(due, key=lambda t: t.when)
            self.timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self.now = target

class RecordingEmitter:
    def __init__(self):
        self.lines = []
        self.raw = []
        self.commands = []
        self.reply_handlers = []

    @property
    def jog_lines(self):
        return [line for line in self.lines if line.startswith("$J=")]

    def write(self, line, on_reply=None):
        self.lines.append(line)
        self.reply_handlers.append(on_reply)

    def write_raw(self, data):
        self.raw.append(data)

    def command(self, action, *args):
        self.commands.append((action, *args))

@pytest.fixture
def scheduler():
    return FakeScheduler()

@pytest.fixture
def emitter():
    return RecordingEmitter()

@pytest.fixture
def macro_table():
    return MacroTable(entries={MacroName.Z_PROBE: "macro-z", MacroName.NEW_TOOL: "macro-tool"})

@pytest.fixture
def controller(emitter, scheduler, macro_table):
    return JogController(emitter, scheduler, macro_table=macro_table)

@pytest.fixture
def app(controller):
    utils.setup_loguru()

    app = fastapi.FastAPI()

    service_mock = MagicMock()
    service_mock.controller = controller
    service_mock.running = True
    service_mock.grbl_connection.port = "/dev/ttyUSB0"
    service_mock.stop_jog.side_effect = controller.stop_smooth_jog

    app.state.pendant_service = service_mock

    app.include_router(health_factory(app))
    app.include_router(jog_factory(app))

    return app

@pytest.fixture
def client(app: fastapi.FastAPI):
    return TestClient(app)
