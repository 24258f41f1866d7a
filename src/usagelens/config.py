import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import structlog

from usagelens.errors import ConfigError

logger = structlog.get_logger()

DEFAULT_API_BASE_URL = "https://api.anthropic.com"
API_BASE_URL_ENV = "ANTHROPIC_BASE_URL"
CLAUDE_DIR_ENV = "USAGELENS_CLAUDE_DIR"


def default_claude_dir() -> "Path":
    try:
        home = Path.home()
    except RuntimeError as exc:
        raise ConfigError("Failed to get home directory") from exc
    return home / ".claude"


def _settings_api_base_url(claude_dir: "Path") -> "str | None":
    """
    reads env.ANTHROPIC_BASE_URL from <claude_dir>/settings.json.
    A missing or malformed settings file is not an error.
    """
    settings_path = claude_dir / "settings.json"
    try:
        settings = json.loads(settings_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as exc:
        logger.debug("settings_unreadable", path=str(settings_path), error=str(exc))
        return None

    if not isinstance(settings, dict):
        return None
    env = settings.get("env")
    if not isinstance(env, dict):
        return None
    value = env.get(API_BASE_URL_ENV)
    return value if isinstance(value, str) else None


def resolve_api_base_url(
    claude_dir: "Path",
    environ: "Mapping[str, str] | None" = None,
) -> "str":
    """
    resolves the endpoint attached to every record of a scan:
    environment variable, then settings.json, then the default.
    """
    env = os.environ if environ is None else environ
    if API_BASE_URL_ENV in env:
        return env[API_BASE_URL_ENV]

    return _settings_api_base_url(claude_dir) or DEFAULT_API_BASE_URL


@dataclass
class Config:
    claude_dir: "Path" = field(default_factory=default_claude_dir)
    api_base_url: "str" = DEFAULT_API_BASE_URL
    log_level: "str" = "info"
    # listen_address: format ":9186" or
    # "0.0.0.0:9186"
    listen_address: "str" = ":9186"

    @classmethod
    def from_env(
        cls,
        environ: "Mapping[str, str] | None" = None,
        claude_dir: "Path | None" = None,
    ) -> "Config":
        env = os.environ if environ is None else environ
        if claude_dir is None:
            override = env.get(CLAUDE_DIR_ENV, "")
            claude_dir = Path(override).expanduser() if override else default_claude_dir()

        return cls(
            claude_dir=claude_dir,
            api_base_url=resolve_api_base_url(claude_dir, env),
        )
