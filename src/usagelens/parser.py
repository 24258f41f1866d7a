import json
import math
from dataclasses import dataclass
from datetime import datetime

from usagelens.models import UsageRecord
from usagelens.pricing import calculate_cost

UNKNOWN_MODEL = "unknown"


@dataclass(frozen=True, slots=True)
class ParsedEntry:
    """
    ParsedEntry pairs an accepted record with the identifiers
    used for deduplication, which are not part of the record itself.
    """

    record: "UsageRecord"
    message_id: "str | None"
    request_id: "str | None"
    # derived from the file location even when the line has a sessionId;
    # io dedup keys are built from it
    file_session_id: "str"

    @property
    def has_io_tokens(self) -> "bool":
        return self.record.input_tokens > 0 or self.record.output_tokens > 0

    @property
    def has_cache_tokens(self) -> "bool":
        return (
            self.record.cache_creation_tokens > 0
            or self.record.cache_read_tokens > 0
        )


class _InvalidShape(Exception):
    pass


def parse_timestamp(value: "str") -> "datetime | None":
    """
    parses an RFC3339 timestamp. Naive values are rejected since
    they cannot be ordered against aware ones.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        return None
    return parsed


def _optional_str(obj: "dict", key: "str") -> "str | None":
    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _InvalidShape(key)
    return value


def _token_count(usage: "dict", key: "str") -> "int":
    value = usage.get(key)
    if value is None:
        return 0
    # bool is an int subclass but never a valid count
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _InvalidShape(key)
    return value


def _explicit_cost(raw: "dict") -> "float | None":
    value = raw.get("costUSD")
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _InvalidShape("costUSD")
    if (isinstance(value, float) and not math.isfinite(value)) or value < 0:
        raise _InvalidShape("costUSD")
    return float(value)


def load_json_object(line: "str") -> "dict | None":
    """
    decodes one line into a JSON object, returning None for blank
    lines, invalid JSON and non-object values.
    """
    if not line.strip():
        return None
    try:
        value = json.loads(line)
    except ValueError:
        return None
    if not isinstance(value, dict):
        return None
    return value


def parse_line(
    line: "str",
    *,
    session_id: "str",
    project_path: "str",
    api_base_url: "str",
) -> "ParsedEntry | None":
    """
    turns one raw log line into a ParsedEntry. Never raises: any
    malformed line, missing message/usage data or all-zero usage
    yields None.

    session_id and project_path are the fallbacks derived from the
    file location; a sessionId field in the line takes precedence.
    """
    raw = load_json_object(line)
    if raw is None:
        return None

    try:
        return _parse_object(
            raw,
            session_id=session_id,
            project_path=project_path,
            api_base_url=api_base_url,
        )
    except _InvalidShape:
        return None


def _parse_object(
    raw: "dict",
    *,
    session_id: "str",
    project_path: "str",
    api_base_url: "str",
) -> "ParsedEntry | None":
    timestamp = raw.get("timestamp")
    if not isinstance(timestamp, str) or parse_timestamp(timestamp) is None:
        return None

    message = raw.get("message")
    if not isinstance(message, dict):
        return None
    usage = message.get("usage")
    if not isinstance(usage, dict):
        return None

    input_tokens = _token_count(usage, "input_tokens")
    output_tokens = _token_count(usage, "output_tokens")
    cache_creation_tokens = _token_count(usage, "cache_creation_input_tokens")
    cache_read_tokens = _token_count(usage, "cache_read_input_tokens")

    # zero-usage lines are noise, not events
    if not (input_tokens or output_tokens or cache_creation_tokens or cache_read_tokens):
        return None

    message_id = _optional_str(message, "id")
    model = _optional_str(message, "model")
    request_id = _optional_str(raw, "requestId")
    record_session_id = _optional_str(raw, "sessionId")

    cost = _explicit_cost(raw)
    if cost is None:
        cost = (
            calculate_cost(
                model,
                input_tokens,
                output_tokens,
                cache_creation_tokens,
                cache_read_tokens,
            )
            if model is not None
            else 0.0
        )

    record = UsageRecord(
        timestamp=timestamp,
        model=model if model is not None else UNKNOWN_MODEL,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        cache_creation_tokens=cache_creation_tokens,
        cache_read_tokens=cache_read_tokens,
        cost=cost,
        session_id=record_session_id or session_id,
        project_path=project_path,
        api_base_url=api_base_url,
    )
    return ParsedEntry(
        record=record,
        message_id=message_id,
        request_id=request_id,
        file_session_id=session_id,
    )
