"""설정 로딩과 로거 설정을 테스트합니다."""
import logging
from pathlib import Path

from sqlalchemy.pool import StaticPool

from fastrepo.config import (
    DEFAULT_ASYNC_DB_URL,
    DEFAULT_DB_URL,
    FastRepoConfig,
    get_config,
    load_setupcfg,
    set_config,
)
from fastrepo.logging import get_logger


def test_load_setupcfg(tmp_path: Path):
    assert load_setupcfg(tmp_path) is None

    (tmp_path / "setup.cfg").write_text(
        "[fastrepo]\nname = accounts\ndb_url = sqlite:///accounts.db\necho = true\n"
    )
    cfg = load_setupcfg(tmp_path)
    assert cfg is not None
    assert (cfg.name, cfg.db_url) == ("accounts", "sqlite:///accounts.db")

    config = FastRepoConfig.load_from_config(tmp_path)
    assert config.name == "accounts"
    assert config.get_db_url() == "sqlite:///accounts.db"
    assert config.echo


def test_config_without_section_uses_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("FASTREPO_DB_URL", raising=False)
    monkeypatch.delenv("FASTREPO_ASYNC_DB_URL", raising=False)
    (tmp_path / "setup.cfg").write_text("[metadata]\nname = other\n")

    config = FastRepoConfig.load_from_config(tmp_path)
    assert config == FastRepoConfig()
    assert config.get_db_url() == DEFAULT_DB_URL
    assert config.get_async_db_url() == DEFAULT_ASYNC_DB_URL


def test_db_url_from_environment(monkeypatch):
    monkeypatch.setenv("FASTREPO_DB_URL", "postgresql://localhost/test")
    monkeypatch.setenv("FASTREPO_ASYNC_DB_URL", "postgresql+asyncpg://localhost/test")

    config = FastRepoConfig()
    assert config.get_db_url() == "postgresql://localhost/test"
    assert config.get_async_db_url() == "postgresql+asyncpg://localhost/test"
    assert config.get_db_connect_args() == {}
    assert config.get_db_poolclass() is None

    # 명시적으로 준 값이 환경변수보다 우선합니다.
    assert FastRepoConfig(db_url="sqlite://").get_db_url() == "sqlite://"


def test_sqlite_engine_arguments():
    config = FastRepoConfig(db_url="sqlite://")

    assert config.get_db_connect_args() == {"check_same_thread": False}
    assert config.get_db_poolclass() is StaticPool
    assert config.get_db_poolclass("sqlite:///:memory:") is StaticPool
    assert config.get_db_poolclass("sqlite:///accounts.db") is None


def test_get_config_is_replaceable():
    config = FastRepoConfig(name="custom")
    set_config(config)
    try:
        assert get_config() is config
    finally:
        set_config(None)


def test_get_logger_adds_single_handler():
    logger = get_logger("fastrepo.test_logger", logging.DEBUG)
    logger = get_logger("fastrepo.test_logger")

    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 1


def test_get_logger_level_from_environment(monkeypatch):
    monkeypatch.setenv("FASTREPO_LOG_LEVEL", "warning")

    assert get_logger("fastrepo.test_env_logger").level == logging.WARNING
    assert get_logger("fastrepo.test_named_level", "error").level == logging.ERROR
