"""
进度引擎配置测试
"""
import pytest

from lingo.core.config import ProgressConfig, get_progress_config, reset_progress_config


class TestProgressConfig:

    def test_defaults(self):
        config = get_progress_config()

        assert config.timezone == "UTC"
        assert config.default_lives == 5
        assert config.max_lives == 10
        assert config.min_experience == 1
        assert config.page_size == 20
        assert config.max_page_size == 100

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("PROGRESS_TIMEZONE", "Europe/Madrid")
        monkeypatch.setenv("PROGRESS_MAX_LIVES", "8")
        monkeypatch.setenv("PROGRESS_DEFAULT_LIVES", "4")
        reset_progress_config()

        config = get_progress_config()

        assert config.timezone == "Europe/Madrid"
        assert config.max_lives == 8
        assert config.default_lives == 4

    def test_config_is_cached(self, monkeypatch):
        first = get_progress_config()
        monkeypatch.setenv("PROGRESS_MAX_LIVES", "3")

        assert get_progress_config() is first

    def test_invalid_integer(self, monkeypatch):
        monkeypatch.setenv("PROGRESS_MAX_LIVES", "ten")
        reset_progress_config()

        with pytest.raises(ValueError):
            get_progress_config()

    def test_invalid_timezone(self):
        with pytest.raises(ValueError):
            ProgressConfig(timezone="Mars/Olympus").validate()

    def test_default_lives_above_max(self):
        with pytest.raises(ValueError):
            ProgressConfig(default_lives=11, max_lives=10).validate()
