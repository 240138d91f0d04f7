"""Tests for configuration loading."""

from nexusflow.config import load_config
from nexusflow.notifiers import get_notifier
from nexusflow.notifiers.redis import RedisNotifier
from nexusflow.persistence import SQLiteWorkflowRepository, get_repository


def test_load_config_defaults():
    config = load_config()
    assert config.database_url is None
    assert config.notifier.backend == "inmemory"
    assert config.execution.step_timeout is None
    assert config.server.port == 3000


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
database_url: sqlite:///tmp/nexusflow.db
notifier:
  backend: redis
  redis:
    host: testhost
    port: 1234
execution:
  step_timeout: 30
agents:
  executor_model: test
"""
    )
    monkeypatch.setenv("NEXUSFLOW_CONFIG", str(config_path))

    config = load_config()
    assert config.database_url == "sqlite:///tmp/nexusflow.db"
    assert config.notifier.backend == "redis"
    assert config.notifier.redis.host == "testhost"
    assert config.notifier.redis.port == 1234
    assert config.execution.step_timeout == 30
    assert config.agents.executor_model == "test"


def test_env_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("database_url: sqlite:///from-file.db\n")
    monkeypatch.setenv("NEXUSFLOW_CONFIG", str(config_path))
    monkeypatch.setenv("NEXUSFLOW_DATABASE_URL", "sqlite:///from-env.db")
    monkeypatch.setenv("NEXUSFLOW_NOTIFIER", "Redis")

    config = load_config()
    assert config.database_url == "sqlite:///from-env.db"
    assert config.notifier.backend == "redis"


def test_get_notifier_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
notifier:
  backend: redis
  redis:
    host: confighost
    port: 6380
"""
    )
    monkeypatch.setenv("NEXUSFLOW_CONFIG", str(config_path))

    notifier = get_notifier()
    assert isinstance(notifier, RedisNotifier)
    assert notifier.host == "confighost"
    assert notifier.port == 6380


def test_get_repository_uses_database_url(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite://{tmp_path / 'wf.db'}")

    repo = get_repository()
    assert isinstance(repo, SQLiteWorkflowRepository)
    assert get_repository() is repo
    repo.close()
