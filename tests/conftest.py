import pytest

from app import create_app
from config import Settings
from portal import Portal



@pytest.fixture
def settings(tmp_path):
    return Settings(data_dir=str(tmp_path), restart_delay_seconds=0)


@pytest.fixture
def restarts():
    return []


@pytest.fixture
def portal(settings, restarts):
    p = Portal(settings, restart=lambda: restarts.append("restart"))
    p.enter()
    return p


@pytest.fixture
def client(portal):
    app = create_app(portal)
    app.testing = True
    return app.test_client()
