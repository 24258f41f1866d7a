from usagelens.parser import ParsedEntry


class DeduplicationStore:
    """
    DeduplicationStore: Tracks the logical events already counted
    during one scan.

    Prevents double-counting the same event when it shows up in more
    than one log file. Two disjoint key families are used:
     - io:<session_id>:<message_id> for entries with input/output tokens,
     where session_id is the one derived from the file location.
     - cache:<message_id>:<request_id> for cache-only entries, since
     retries can repeat message ids but not request ids.
    Entries lacking the identifiers for their key are always admitted.

    A single store must be shared by every file of a scan.
    """

    def __init__(self) -> "None":
        self._seen: "set[str]" = set()

    def __len__(self) -> "int":
        return len(self._seen)

    @staticmethod
    def make_io_key(session_id: "str", message_id: "str") -> "str":
        return f"io:{session_id}:{message_id}"

    @staticmethod
    def make_cache_key(message_id: "str", request_id: "str") -> "str":
        return f"cache:{message_id}:{request_id}"

    def key_for(self, entry: "ParsedEntry") -> "str | None":
        """
        returns the dedup key of the entry, or None when the entry
        carries no usable identifiers. The io family takes precedence
        when an entry has both io and cache tokens.
        """
        if entry.has_io_tokens:
            if entry.message_id is None:
                return None
            return self.make_io_key(entry.file_session_id, entry.message_id)

        if entry.has_cache_tokens:
            if entry.message_id is None or entry.request_id is None:
                return None
            return self.make_cache_key(entry.message_id, entry.request_id)

        return None

    def admit(self, entry: "ParsedEntry") -> "bool":
        """
        checks if the given entry is new. If so, mark it as seen
        and returns True. A rejected entry leaves the store untouched.
        """
        key = self.key_for(entry)
        if key is None:
            return True

        if key in self._seen:
            return False

        self._seen.add(key)
        return True
