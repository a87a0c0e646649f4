"""Error taxonomy shared by the indexing, storage and aggregation layers."""


class TilePyramidError(Exception):
    """Base class for all errors raised by this package."""


class InvalidCoordinate(TilePyramidError, ValueError):
    """A point lies outside the Web Mercator valid range (caller error)."""

    def __init__(self, longitude: float, latitude: float, reason: str = ""):
        self.longitude = longitude
        self.latitude = latitude
        message = f"Invalid coordinate (lon={longitude}, lat={latitude})"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class MalformedKey(TilePyramidError):
    """A stored tile key failed to decode. Keys are system generated, so this is a bug."""

    def __init__(self, key: object, reason: str = ""):
        self.key = key
        message = f"Malformed tile key {key!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class CollaboratorFailure(TilePyramidError):
    """The record store is unreachable or a store operation failed."""

    def __init__(self, operation: str, cause: Exception = None):
        self.operation = operation
        self.cause = cause
        message = f"Record store operation '{operation}' failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
