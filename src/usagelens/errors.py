class UsageLensError(Exception):
    """
    base class for errors surfaced to callers. Per-line, per-file
    and missing-directory problems are recovered inside a scan and
    never raise.
    """


class ConfigError(UsageLensError):
    """
    raised when the home or config directory cannot be resolved.
    """


class InvalidDateError(UsageLensError, ValueError):
    """
    raised when an explicit date boundary of a query cannot be parsed.
    """

    def __init__(self, label: "str", value: "str") -> "None":
        super().__init__(f"Invalid {label} date: {value!r}")
        self.label = label
        self.value = value


class InvalidQueryError(UsageLensError, ValueError):
    """
    raised when a query parameter is out of range, e.g. a negative day count.
    """
