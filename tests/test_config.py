"""
Tests for CSRFConfig and ConfigLoader (config.py).
"""

import pytest

from doorstep.config import SAFE_METHODS, CSRFConfig, ConfigError, ConfigLoader


class TestCSRFConfig:

    def test_defaults(self):
        config = CSRFConfig()
        assert config.ignore_paths == frozenset()
        assert config.session_key == "__csrfSecret"
        assert config.header_names[:2] == ("csrf-token", "x-csrf-token")
        assert config.body_field == "_csrf"
        assert config.accept_query_token is True

    def test_safe_methods_fixed(self):
        assert SAFE_METHODS == frozenset({"GET", "HEAD", "OPTIONS"})
        assert not hasattr(CSRFConfig(), "safe_methods")

    def test_header_names_lowercased(self):
        config = CSRFConfig(header_names=("X-CSRF-Token",))
        assert config.header_names == ("x-csrf-token",)

    def test_ignore_paths_frozen(self):
        config = CSRFConfig(ignore_paths={"/a"})
        assert isinstance(config.ignore_paths, frozenset)

    @pytest.mark.parametrize("kwargs", [
        {"secret_bytes": 8},
        {"salt_bytes": 4},
        {"header_names": ()},
        {"session_key": ""},
        {"body_field": ""},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            CSRFConfig(**kwargs)

    def test_from_dict_csv(self):
        config = CSRFConfig.from_dict({
            "ignore_paths": "/api/analytics/beacon, /webhooks/*",
            "header_names": "x-csrf-token",
        })
        assert config.ignore_paths == frozenset({"/api/analytics/beacon", "/webhooks/*"})
        assert config.header_names == ("x-csrf-token",)

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigError, match="ignore_methods"):
            CSRFConfig.from_dict({"ignore_methods": ["POST"]})

    @pytest.mark.parametrize("data", [
        {"secret_bytes": "32"},
        {"secret_bytes": True},
        {"accept_query_token": "yes"},
        {"session_key": 3},
        {"ignore_paths": 5},
    ])
    def test_from_dict_type_errors(self, data):
        with pytest.raises(ConfigError):
            CSRFConfig.from_dict(data)

    def test_with_ignore_paths(self):
        config = CSRFConfig(ignore_paths=frozenset({"/a"})).with_ignore_paths("/b")
        assert config.ignore_paths == frozenset({"/a", "/b"})

    def test_to_dict_round_trips_through_from_dict(self):
        config = CSRFConfig(ignore_paths=frozenset({"/b", "/a"}), accept_query_token=False)
        assert CSRFConfig.from_dict(config.to_dict()) == config


class TestConfigLoader:

    def test_empty_environment_gives_defaults(self):
        loader = ConfigLoader.load(environ={})
        assert loader.csrf_config() == CSRFConfig()

    def test_environment_variables(self):
        loader = ConfigLoader.load(environ={
            "DOORSTEP_CSRF__IGNORE_PATHS": "/api/analytics/beacon,/api/health",
            "DOORSTEP_CSRF__ACCEPT_QUERY_TOKEN": "false",
            "DOORSTEP_CSRF__SECRET_BYTES": "48",
            "UNRELATED": "x",
        })
        config = loader.csrf_config()
        assert config.ignore_paths == frozenset({"/api/analytics/beacon", "/api/health"})
        assert config.accept_query_token is False
        assert config.secret_bytes == 48

    def test_json_list_value(self):
        loader = ConfigLoader.load(environ={
            "DOORSTEP_CSRF__IGNORE_PATHS": '["/a", "/b"]',
        })
        assert loader.get("csrf.ignore_paths") == ["/a", "/b"]
        assert loader.csrf_config().ignore_paths == frozenset({"/a", "/b"})

    def test_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "# csrf settings\n"
            "DOORSTEP_CSRF__SESSION_KEY=csrf_secret\n"
            "DOORSTEP_CSRF__IGNORE_PATHS=\"/api/track\"\n"
            "OTHER_VALUE=ignored\n"
        )
        loader = ConfigLoader.load(env_file=str(env_file), environ={})
        config = loader.csrf_config()
        assert config.session_key == "csrf_secret"
        assert config.ignore_paths == frozenset({"/api/track"})

    def test_precedence(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("DOORSTEP_CSRF__SESSION_KEY=from_file\n")
        loader = ConfigLoader.load(
            env_file=str(env_file),
            environ={"DOORSTEP_CSRF__SESSION_KEY": "from_env"},
        )
        assert loader.csrf_config().session_key == "from_env"

        loader = ConfigLoader.load(
            env_file=str(env_file),
            environ={"DOORSTEP_CSRF__SESSION_KEY": "from_env"},
            overrides={"csrf": {"session_key": "from_override"}},
        )
        assert loader.csrf_config().session_key == "from_override"

    def test_missing_env_file_ignored(self, tmp_path):
        loader = ConfigLoader.load(env_file=str(tmp_path / "absent.env"), environ={})
        assert loader.config_data == {}

    def test_custom_prefix(self):
        loader = ConfigLoader.load(
            env_prefix="DS_",
            environ={"DS_CSRF__BODY_FIELD": "csrf", "DOORSTEP_CSRF__BODY_FIELD": "other"},
        )
        assert loader.csrf_config().body_field == "csrf"

    def test_bad_section(self):
        loader = ConfigLoader.load(environ={"DOORSTEP_CSRF": "on"})
        with pytest.raises(ConfigError):
            loader.csrf_config()

    def test_get_default(self):
        loader = ConfigLoader.load(environ={})
        assert loader.get("csrf.session_key", "fallback") == "fallback"
