import time

import pytest
import yaml
from pathlib import Path

from shared.common_utils.env_settings import AgentSettings
from services.config_manager_service.src.config_store import ConfigStore
from services.config_manager_service.src.lru_cache import DependentCacheManager


@pytest.fixture
def agent_dir(tmp_path):
    """Create an agent base directory with an empty conf/ directory."""
    (tmp_path / "conf").mkdir()
    return tmp_path


@pytest.fixture
def config_file(agent_dir) -> Path:
    return agent_dir / "conf" / "openrasp.yml"


@pytest.fixture
def write_config(config_file):
    """Write a dict as the agent's YAML configuration document."""
    def write(content):
        with open(config_file, "w") as f:
            yaml.dump(content, f)
        return config_file
    return write


@pytest.fixture
def settings(agent_dir):
    return AgentSettings(BASE_DIR=str(agent_dir))


@pytest.fixture
def cache_manager():
    return DependentCacheManager()


@pytest.fixture
def store(cache_manager):
    return ConfigStore(cache_manager)


@pytest.fixture
def fake_watch():
    """Stands in for watchfiles.watch: one idle tick, then nothing until the stop event is set."""
    calls = []

    def watch(path, stop_event=None, **kwargs):
        calls.append(path)
        yield set()
        stop_event.wait()

    watch.calls = calls
    return watch


def _wait_until(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def wait_until():
    """Poll a predicate until it holds or the timeout expires."""
    return _wait_until

