import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

import pytest
from prometheus_client import CollectorRegistry

from usagelens.models import UsageRecord

NOW = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)
API_BASE_URL = "https://api.anthropic.com"

LogWriter = Callable[..., Path]


@pytest.fixture()
def registry() -> "CollectorRegistry":
    """
    fresh Prometheus registry to avoid cross-test state.
    """
    return CollectorRegistry()


@pytest.fixture()
def now() -> "datetime":
    return NOW


@pytest.fixture()
def claude_dir(tmp_path: "Path") -> "Path":
    path = tmp_path / ".claude"
    (path / "projects").mkdir(parents=True)
    return path


@pytest.fixture()
def write_log(claude_dir: "Path") -> "LogWriter":
    """
    writes a JSONL file at projects/<project>/<session>/<name> and
    returns its path. Lines may be dicts (serialised) or raw strings.
    """

    def _write(
        project: "str",
        session: "str",
        lines: "list[dict | str]",
        name: "str" = "log.jsonl",
    ) -> "Path":
        directory = claude_dir / "projects" / project / session
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        text = "\n".join(
            line if isinstance(line, str) else json.dumps(line) for line in lines
        )
        path.write_text(text + "\n", encoding="utf-8")
        return path

    return _write


def log_line(
    timestamp: "str",
    *,
    message_id: "str | None" = "msg-1",
    model: "str | None" = "claude-sonnet-4-20250514",
    input_tokens: "int" = 0,
    output_tokens: "int" = 0,
    cache_creation: "int" = 0,
    cache_read: "int" = 0,
    session_id: "str | None" = None,
    request_id: "str | None" = None,
    cost: "float | None" = None,
    cwd: "str | None" = None,
) -> "dict":
    """
    builds one raw log object in the on-disk format.
    """
    usage = {
        "input_tokens": input_tokens,
        "output_tokens": output_tokens,
        "cache_creation_input_tokens": cache_creation,
        "cache_read_input_tokens": cache_read,
    }
    message: "dict" = {"usage": usage}
    if message_id is not None:
        message["id"] = message_id
    if model is not None:
        message["model"] = model

    raw: "dict" = {"timestamp": timestamp, "message": message}
    if session_id is not None:
        raw["sessionId"] = session_id
    if request_id is not None:
        raw["requestId"] = request_id
    if cost is not None:
        raw["costUSD"] = cost
    if cwd is not None:
        raw["cwd"] = cwd
    return raw


def make_record(
    timestamp: "str" = "2025-06-15T10:00:00Z",
    *,
    model: "str" = "claude-sonnet-4-20250514",
    input_tokens: "int" = 100,
    output_tokens: "int" = 0,
    cache_creation_tokens: "int" = 0,
    cache_read_tokens: "int" = 0,
    cost: "float" = 1.0,
    session_id: "str" = "s1",
    project_path: "str" = "/work/app",
    api_base_url: "str" = API_BASE_URL,
) -> "UsageRecord":
    return UsageRecord(
        timestamp=timestamp,
        model=model,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cache_creation_tokens=cache_creation_tokens,
        cache_read_tokens=cache_read_tokens,
        cost=cost,
        session_id=session_id,
        project_path=project_path,
        api_base_url=api_base_url,
    )
