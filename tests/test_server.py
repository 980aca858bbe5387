import asyncio
from types import SimpleNamespace

import pytest

from app.core.config import Config
from app.server import ServerSupervisor, build_server


@pytest.fixture
def loop():
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


def fake_server():
    return SimpleNamespace(should_exit=False, started=True)


def test_unhandled_error_requests_graceful_shutdown(loop):
    exits = []
    server = fake_server()
    supervisor = ServerSupervisor(server, grace_seconds=0, exit_func=exits.append)

    supervisor.handle_exception(loop, {"message": "Task exception was never retrieved", "exception": RuntimeError("boom")})

    assert server.should_exit is True
    assert supervisor.failed is True
    assert supervisor.exit_code == 1
    loop.run_until_complete(asyncio.sleep(0.01))
    assert exits == [1]


def test_repeated_errors_schedule_one_exit(loop):
    exits = []
    supervisor = ServerSupervisor(fake_server(), grace_seconds=0, exit_func=exits.append)
    supervisor.handle_exception(loop, {"message": "first"})
    supervisor.handle_exception(loop, {"message": "second"})
    loop.run_until_complete(asyncio.sleep(0.01))
    assert exits == [1]


def test_install_sets_loop_handler(loop):
    supervisor = ServerSupervisor(fake_server(), grace_seconds=5)
    supervisor.install(loop)
    assert loop.get_exception_handler() == supervisor.handle_exception


def test_clean_run_exit_code():
    supervisor = ServerSupervisor(fake_server(), grace_seconds=5)
    assert supervisor.exit_code == 0


def test_failed_startup_exit_code():
    supervisor = ServerSupervisor(SimpleNamespace(should_exit=False, started=False), grace_seconds=5)
    assert supervisor.exit_code == 1


def test_build_server_uses_config():
    server = build_server(Config(environment="testing", database_url="sqlite:///:memory:", port=9123))
    assert server.config.port == 9123
    assert server.config.lifespan == "on"
