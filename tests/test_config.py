import json
from pathlib import Path

from usagelens.config import (
    API_BASE_URL_ENV,
    CLAUDE_DIR_ENV,
    DEFAULT_API_BASE_URL,
    Config,
    resolve_api_base_url,
)


def _write_settings(claude_dir: "Path", settings: "object") -> "None":
    (claude_dir / "settings.json").write_text(json.dumps(settings), encoding="utf-8")


class TestResolveApiBaseUrl:
    def test_environment_wins(self, claude_dir: "Path") -> "None":
        _write_settings(claude_dir, {"env": {API_BASE_URL_ENV: "https://settings"}})
        env = {API_BASE_URL_ENV: "https://env"}
        assert resolve_api_base_url(claude_dir, env) == "https://env"

    def test_settings_file(self, claude_dir: "Path") -> "None":
        _write_settings(claude_dir, {"env": {API_BASE_URL_ENV: "https://settings"}})
        assert resolve_api_base_url(claude_dir, {}) == "https://settings"

    def test_default_without_settings(self, claude_dir: "Path") -> "None":
        assert resolve_api_base_url(claude_dir, {}) == DEFAULT_API_BASE_URL

    def test_malformed_settings_fall_back(self, claude_dir: "Path") -> "None":
        (claude_dir / "settings.json").write_text("{nope", encoding="utf-8")
        assert resolve_api_base_url(claude_dir, {}) == DEFAULT_API_BASE_URL

    def test_non_string_setting_ignored(self, claude_dir: "Path") -> "None":
        _write_settings(claude_dir, {"env": {API_BASE_URL_ENV: 42}})
        assert resolve_api_base_url(claude_dir, {}) == DEFAULT_API_BASE_URL


class TestConfigFromEnv:
    def test_claude_dir_override(self, claude_dir: "Path") -> "None":
        config = Config.from_env({CLAUDE_DIR_ENV: str(claude_dir)})
        assert config.claude_dir == claude_dir
        assert config.api_base_url == DEFAULT_API_BASE_URL

    def test_explicit_claude_dir_and_endpoint(self, claude_dir: "Path") -> "None":
        config = Config.from_env(
            {API_BASE_URL_ENV: "https://proxy.example.com"},
            claude_dir=claude_dir,
        )
        assert config.claude_dir == claude_dir
        assert config.api_base_url == "https://proxy.example.com"

    def test_reads_process_environment(
        self,
        claude_dir: "Path",
        monkeypatch: "object",
    ) -> "None":
        monkeypatch.setenv(CLAUDE_DIR_ENV, str(claude_dir))
        monkeypatch.setenv(API_BASE_URL_ENV, "https://from-env")
        config = Config.from_env()
        assert config.claude_dir == claude_dir
        assert config.api_base_url == "https://from-env"

    def test_defaults(self, claude_dir: "Path") -> "None":
        config = Config(claude_dir=claude_dir)
        assert config.log_level == "info"
        assert config.listen_address == ":9186"
