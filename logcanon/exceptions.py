"""Exceptions raised by logcanon.

Parsers treat deserialization, timestamp and validation errors as soft
failures: the record is dropped and the error is logged. The remaining
errors are programming or wiring mistakes and propagate to the caller.
"""


class LogcanonError(Exception):
    """Base exception for all logcanon errors."""

    pass


class DeserializationError(LogcanonError):
    """Raised when raw input does not match a format record's schema."""

    pass


class InvalidTimestamp(LogcanonError, ValueError):
    """Raised when a timestamp string cannot be parsed in its declared format."""

    def __init__(self, value: object, fmt: str):
        self.value = value
        self.fmt = fmt
        super().__init__(f"invalid {fmt} timestamp: {value!r}")


class ParserNotFoundError(LogcanonError, LookupError):
    """Raised when no parser is registered for a log type.

    The record is unroutable; what to do with it is up to the caller.
    """

    def __init__(self, log_type: str):
        self.log_type = log_type
        super().__init__(f"no parser registered for log type {log_type!r}")


class DuplicateLogTypeError(LogcanonError):
    """Raised when a log type is registered twice."""

    pass


class RegistryFrozenError(LogcanonError):
    """Raised when a frozen registry is modified."""

    pass


class RecordFinalizedError(LogcanonError, AttributeError):
    """Raised when core fields of a finalized record are changed."""

    pass


class UndefinedRuleError(LogcanonError, ValueError):
    """Raised when a constraint names a rule that is not registered."""

    pass


class ConfigurationError(LogcanonError):
    """Raised when configuration is invalid."""

    pass
