import pytest

from tests.fakes import FakeRegistry


@pytest.fixture
def registry(monkeypatch):
    """Replace requests.Session used by cifetch with an in-memory registry."""
    fake = FakeRegistry()
    monkeypatch.setattr("cifetch.modules.auth.auth.requests.Session", fake.session_factory)
    return fake


@pytest.fixture
def docker_config(tmp_path, monkeypatch):
    """Empty Docker config dir; tests write config.json into it as needed."""
    monkeypatch.setattr("cifetch.config.DOCKER_CONFIG_DIR", str(tmp_path))
    return tmp_path
