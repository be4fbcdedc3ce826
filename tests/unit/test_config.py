"""
Unit tests for server configuration.
"""

import pytest

from staticserver import ServerConfig
from staticserver.middleware.compression import COMPRESSIBLE_TYPES


class TestDefaults:
    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8080
        assert config.root is None
        assert config.gzip is True
        assert config.gzip_level == -1
        assert config.compressible_types == COMPRESSIBLE_TYPES
        assert config.log_format == "text"

    def test_defaults_are_valid(self):
        ServerConfig().validate()


class TestFromEnv:
    """Tests for ServerConfig.from_env."""

    def test_empty_environment_gives_defaults(self):
        assert ServerConfig.from_env({}) == ServerConfig()

    def test_reads_variables(self, tmp_path):
        config = ServerConfig.from_env({
            "STATIC_HOST": "0.0.0.0",
            "STATIC_PORT": "3000",
            "STATIC_ROOT": str(tmp_path),
            "STATIC_WORKERS": "2",
            "STATIC_LOG_LEVEL": "debug",
            "STATIC_LOG_FORMAT": "JSON",
            "STATIC_GZIP": "off",
            "STATIC_GZIP_LEVEL": "9",
        })

        assert config.host == "0.0.0.0"
        assert config.port == 3000
        assert config.root == str(tmp_path)
        assert config.workers == 2
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert config.gzip is False
        assert config.gzip_level == 9

    def test_empty_root_means_bundled(self):
        assert ServerConfig.from_env({"STATIC_ROOT": ""}).root is None

    @pytest.mark.parametrize("value, expected", [
        ("1", True), ("true", True), ("YES", True), ("on", True),
        ("0", False), ("false", False), ("No", False), ("off", False),
    ])
    def test_booleans(self, value: str, expected: bool):
        assert ServerConfig.from_env({"STATIC_GZIP": value}).gzip is expected

    def test_bad_integer(self):
        with pytest.raises(ValueError, match="STATIC_PORT"):
            ServerConfig.from_env({"STATIC_PORT": "eighty"})

    def test_bad_boolean(self):
        with pytest.raises(ValueError, match="STATIC_GZIP"):
            ServerConfig.from_env({"STATIC_GZIP": "maybe"})


class TestValidate:
    """Tests for ServerConfig.validate."""

    @pytest.mark.parametrize("overrides", [
        {"port": -1},
        {"port": 65536},
        {"workers": 0},
        {"backlog": 0},
        {"buffer_size": 512},
        {"timeout": 0},
        {"keep_alive_timeout": -1.0},
        {"max_request_size": 100},
        {"cache_max_age": -5},
        {"gzip_level": 0},
        {"gzip_level": 10},
        {"compressible_types": ()},
        {"log_level": "LOUD"},
        {"log_format": "xml"},
    ])
    def test_rejects(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_missing_root(self, tmp_path):
        with pytest.raises(ValueError, match="root"):
            ServerConfig(root=str(tmp_path / "nope")).validate()

    def test_accepts_existing_root_and_port_zero(self, tmp_path):
        ServerConfig(root=str(tmp_path), port=0, gzip_level=9, cache_max_age=0).validate()
