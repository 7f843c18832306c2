"""Exception taxonomy for the debug log subsystem.

Only ValidationError is meant to reach callers. Persistence errors are raised
by storage adapters and absorbed by the persistence coordinator, which logs
them and reports the degraded outcome in its result type.
"""


class DebugLogError(Exception):
    """Base class for all debuglog errors."""


class ValidationError(DebugLogError, ValueError):
    """A log entry could not be constructed from the supplied fields."""


class PersistenceError(DebugLogError):
    """A storage tier could not complete an operation."""


class PersistenceWriteFailure(PersistenceError):
    """Writing to the primary store, the local cache or the sink failed."""


class PersistenceReadFailure(PersistenceError):
    """Reading from the primary store or the local cache failed."""
