"""Pytest configuration and fixtures for oaServiceControl tests."""

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add src to Python path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from oaServiceControl.api.app import create_app  # noqa: E402
from oaServiceControl.control.controller import ServiceController  # noqa: E402
from oaServiceControl.core.config_schema import AppConfig, ControlConfig  # noqa: E402
from oaServiceControl.models.operations import ServiceIdentity  # noqa: E402
from oaServiceControl.models.records import ServerRecord, ServiceRecord  # noqa: E402
from oaServiceControl.storage.memory import InMemoryStorage  # noqa: E402


def sc_query_output(name: str, state: str, code: int = 4) -> str:
    """Build ``sc query`` output for a service in ``state``."""
    return (
        f"\r\nSERVICE_NAME: {name}\r\n"
        f"        TYPE               : 10  WIN32_OWN_PROCESS\r\n"
        f"        STATE              : {code}  {state}\r\n"
        f"                                (STOPPABLE, NOT_PAUSABLE, ACCEPTS_SHUTDOWN)\r\n"
        f"        WIN32_EXIT_CODE    : 0  (0x0)\r\n"
    )


STOP_OK = "\r\nSERVICE_NAME: Spooler\r\n        STATE              : 3  STOP_PENDING\r\n"
START_OK = "\r\nSERVICE_NAME: Spooler\r\n        STATE              : 2  START_PENDING\r\n"


class FakeExecutor:
    """
    Scripted remote executor.

    ``script`` maps a command verb (``query``, ``stop``, ``start``) to the
    outputs returned for it in order; the last entry repeats. An entry that
    is an exception instance is raised instead of returned.
    """

    def __init__(self, script: dict[str, list]):
        self.script = {verb: list(items) for verb, items in script.items()}
        self.commands: list[str] = []

    async def run_command(self, command: str) -> str:
        self.commands.append(command)
        verb = command.split()[1]
        items = self.script.get(verb)
        if not items:
            raise AssertionError(f"Unexpected command: {command}")

        item = items.pop(0) if len(items) > 1 else items[0]
        if isinstance(item, BaseException):
            raise item
        return item

    def verbs(self) -> list[str]:
        return [c.split()[1] for c in self.commands]


class RecordingSink:
    """Status sink that records writes and can be told to fail."""

    def __init__(self, fail: bool = False):
        self.writes: list[tuple[str, str]] = []
        self.fail = fail

    async def change_service_status(self, service_name: str, status: str) -> None:
        if self.fail:
            raise RuntimeError("storage is down")
        self.writes.append((service_name, status))


class RecordedSleep:
    """Sleep replacement that records requested delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeExecutorFactory:
    """Executor factory handing out one prepared executor."""

    def __init__(self, executor):
        self.executor = executor
        self.created: list[tuple] = []

    def create(self, address, username, password, port=None):
        self.created.append((address, username, password, port))
        return self.executor


class StaticReachability:
    def __init__(self, reachable: bool = True):
        self.reachable = reachable
        self.probes: list[tuple] = []

    async def is_reachable(self, address, port, timeout):
        self.probes.append((address, port, timeout))
        return self.reachable


@pytest.fixture
def sc_output():
    """Builder for sc query output."""
    return sc_query_output


@pytest.fixture
def make_executor():
    """Factory for scripted executors."""
    return FakeExecutor


@pytest.fixture
def identity():
    return ServiceIdentity(service_name="Spooler", display_name="Print Spooler")


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def failing_sink():
    return RecordingSink(fail=True)


@pytest.fixture
def recorded_sleep():
    return RecordedSleep()


@pytest.fixture
def controller(recorded_sleep):
    """Controller with default timings that never actually sleeps while waiting."""
    return ServiceController(ControlConfig(), sleep=recorded_sleep)


@pytest.fixture
def storage():
    """Storage seeded with one server and two services."""
    store = InMemoryStorage()
    store.add_server(ServerRecord(
        id=1, name="web-01", address="10.0.0.5", username="svc", password="secret"
    ))
    store.add_service(ServiceRecord(id=10, server_id=1, service_name="Spooler", displayed_name="Print Spooler"))
    store.add_service(ServiceRecord(id=11, server_id=1, service_name="W32Time", displayed_name="Windows Time"))
    return store


@pytest.fixture
def test_config():
    """Configuration for API tests: no subnet restriction, no CORS."""
    return AppConfig(
        _env_file=None,
        security={"enable_subnet_restriction": False, "enable_cors": False},
        environment="testing",
    )


@pytest.fixture
def make_client(test_config, storage, recorded_sleep):
    """Build a TestClient around a scripted executor."""

    def _make(script: dict[str, list], reachable: bool = True, config: AppConfig | None = None):
        executor = FakeExecutor(script)
        factory = FakeExecutorFactory(executor)
        checker = StaticReachability(reachable)
        cfg = config or test_config
        app = create_app(
            cfg,
            storage=storage,
            executor_factory=factory,
            checker=checker,
            controller=ServiceController(cfg.control, sleep=recorded_sleep),
        )
        client = TestClient(app)
        client.executor = executor
        client.factory = factory
        client.checker = checker
        return client

    return _make
