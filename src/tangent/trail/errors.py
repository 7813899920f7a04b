"""Exceptions raised by the trail engine and its collaborators."""


class TrailError(Exception):
    """Base class for trail errors."""


class MalformedTrailData(TrailError, ValueError):
    """Raised when serialized trail data cannot be parsed or is incomplete."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class TrailNotFound(TrailError, LookupError):
    """Raised when a trail id is unknown to the persistence collaborator."""

    def __init__(self, trail_id: str):
        self.trail_id = trail_id
        super().__init__(f"Trail not found: {trail_id}")


class PersistenceFailure(TrailError, RuntimeError):
    """A background write of trail data failed. Logged, never raised to the appender."""

    def __init__(self, trail_id: str, cause: BaseException):
        self.trail_id = trail_id
        self.cause = cause
        super().__init__(f"Failed to persist trail {trail_id}: {cause}")
