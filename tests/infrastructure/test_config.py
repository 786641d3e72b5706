"""Tests for configuration module."""

import json
import pytest
from unittest.mock import patch

from rollout.infrastructure.config import (
    ApplicationConfig,
    FleetConfig,
    HooksConfig,
    RolloutConfig,
    load_config,
)


class TestDefaultConfig:
    def test_defaults(self):
        config = load_config(path="/nonexistent/rollout.json")
        assert config.log_level == "WARNING"
        assert config.application.keep_releases == 4
        assert config.application.root_directory == "/home/www"
        assert config.repository.branch == "master"
        assert config.fleet.targets == ()
        assert config.dependencies.binary == "composer"
        assert config.tests.arguments == "--stop-on-failure"
        assert config.tests.passed_marker == "OK"
        assert config.permissions.owner == "www-data:www-data"

    def test_all_sections_present(self):
        config = load_config(path="/nonexistent/rollout.json")
        assert isinstance(config, RolloutConfig)
        assert isinstance(config.application, ApplicationConfig)
        assert isinstance(config.fleet, FleetConfig)
        assert isinstance(config.hooks, HooksConfig)


class TestFileConfig:
    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "rollout.json"
        config_file.write_text(json.dumps({
            "log_level": "DEBUG",
            "application": {"name": "shop", "root_directory": "/srv", "keep_releases": 2},
            "repository": {"url": "git@example.com:acme/shop.git", "branch": "main"},
            "fleet": {"targets": ["10.0.0.1", "10.0.0.2"], "user": "deploy"},
            "permissions": {"folders": ["storage", "bootstrap/cache"]},
            "hooks": {"before": {"symlink": ["php artisan migrate"]}},
        }))

        config = load_config(path=str(config_file))
        assert config.log_level == "DEBUG"
        assert config.application.name == "shop"
        assert config.application.keep_releases == 2
        assert config.repository.branch == "main"
        assert config.fleet.targets == ("10.0.0.1", "10.0.0.2")
        assert config.fleet.user == "deploy"
        assert config.permissions.folders == ("storage", "bootstrap/cache")
        assert config.hooks.commands("before", "symlink") == ["php artisan migrate"]

    def test_unknown_keys_ignored(self, tmp_path):
        config_file = tmp_path / "rollout.json"
        config_file.write_text(json.dumps({"application": {"name": "shop", "colour": "red"}}))
        assert load_config(path=str(config_file)).application.name == "shop"

    def test_invalid_json_falls_back(self, tmp_path):
        config_file = tmp_path / "rollout.json"
        config_file.write_text("{not json")
        assert load_config(path=str(config_file)) == RolloutConfig()

    def test_non_object_falls_back(self, tmp_path):
        config_file = tmp_path / "rollout.json"
        config_file.write_text("[1, 2, 3]")
        assert load_config(path=str(config_file)) == RolloutConfig()

    def test_default_path_in_cwd(self, tmp_path, monkeypatch):
        (tmp_path / "rollout.json").write_text(json.dumps({"repository": {"branch": "release"}}))
        monkeypatch.chdir(tmp_path)
        assert load_config().repository.branch == "release"


class TestEnvOverride:
    def test_env_overrides_file(self, tmp_path):
        config_file = tmp_path / "rollout.json"
        config_file.write_text(json.dumps({"repository": {"branch": "main"}}))
        with patch.dict("os.environ", {"ROLLOUT_REPOSITORY_BRANCH": "hotfix"}):
            config = load_config(path=str(config_file))
        assert config.repository.branch == "hotfix"

    def test_env_coerces_types(self):
        env = {
            "ROLLOUT_FLEET_TARGETS": "10.0.0.1, 10.0.0.2",
            "ROLLOUT_FLEET_PORT": "2222",
            "ROLLOUT_TELEMETRY_INSECURE": "true",
        }
        with patch.dict("os.environ", env):
            config = load_config(path="/nonexistent/rollout.json")
        assert config.fleet.targets == ("10.0.0.1", "10.0.0.2")
        assert config.fleet.port == 2222
        assert config.telemetry.insecure is True

    def test_env_log_level(self):
        with patch.dict("os.environ", {"ROLLOUT_LOG_LEVEL": "INFO"}):
            config = load_config(path="/nonexistent/rollout.json")
        assert config.log_level == "INFO"

    def test_custom_prefix(self):
        with patch.dict("os.environ", {"DEPLOY_APPLICATION_NAME": "blog"}):
            config = load_config(path="/nonexistent/rollout.json", env_prefix="DEPLOY")
        assert config.application.name == "blog"


class TestHooksConfig:
    def test_string_hook(self):
        hooks = HooksConfig(after={"clone": "git submodule update --init"})
        assert hooks.commands("after", "clone") == ["git submodule update --init"]

    def test_missing_hook(self):
        assert HooksConfig().commands("before", "clone") == []

    def test_config_is_frozen(self):
        with pytest.raises(AttributeError):
            RolloutConfig().log_level = "DEBUG"
