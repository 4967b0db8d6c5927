"""Exception hierarchy for shardsplit.

Every error raised by the library derives from SplitterError. None of them are
retried internally: a failure ends the calculation pass that raised it and the
caller decides whether to run the whole pass again.

    SplitterError
    ├── SourceConnectionError
    │   └── AuthenticationError
    ├── SplitComputationError
    │   └── MetadataReadError
    ├── SplitFailedError
    └── SplitValidationError (ValueError)
        ├── InvalidBoundaryError
        ├── QueryConflictError
        └── MalformedDescriptorError

Validation errors signal local misuse and are never transient.
"""

from typing import Any, Mapping, Optional


class SplitterError(Exception):
    """Base exception for all shardsplit errors.

    Example:
        try:
            splits = splitter.calculate_splits()
        except SplitterError as e:
            log.error("split calculation failed: %s", e)
    """

    def __init__(self, message: str, *args):
        self.message = message
        super().__init__(message, *args)


# =============================================================================
# CONNECTION
# =============================================================================


class SourceConnectionError(SplitterError):
    """The input URI could not be resolved to a reachable collection.

    Attributes:
        uri: The URI that failed to resolve.
        cause: The underlying driver exception, if any.
    """

    def __init__(
        self,
        uri: str,
        cause: Optional[Exception] = None,
        message: Optional[str] = None,
    ):
        self.uri = uri
        self.cause = cause
        message = message or f"Could not connect to source '{uri}'"
        if cause:
            message += f": {cause}"
        super().__init__(message)


class AuthenticationError(SourceConnectionError):
    """The server rejected the credentials taken from the auth URI."""

    def __init__(self, uri: str, database: str, cause: Optional[Exception] = None):
        self.database = database
        super().__init__(
            uri, cause, f"Authentication against database '{database}' failed"
        )


# =============================================================================
# METADATA / COMPUTATION
# =============================================================================


class SplitComputationError(SplitterError):
    """A strategy could not produce a valid split sequence."""

    pass


class MetadataReadError(SplitComputationError):
    """A partition metadata query could not be executed.

    Attributes:
        namespace: The metadata namespace or command being read.
        cause: The underlying driver exception.
    """

    def __init__(self, namespace: str, cause: Optional[Exception] = None):
        self.namespace = namespace
        self.cause = cause
        message = f"Failed to read metadata from '{namespace}'"
        if cause:
            message += f": {cause}"
        super().__init__(message)


class SplitFailedError(SplitterError):
    """Building one split failed; the cause is chained and kept on .cause."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.cause = cause
        if cause:
            message += f": {cause}"
        super().__init__(message)


# =============================================================================
# VALIDATION
# =============================================================================


class SplitValidationError(SplitterError, ValueError):
    """Base class for misuse errors detected while validating inputs."""

    pass


class InvalidBoundaryError(SplitValidationError):
    """Range-query mode was given a compound or mismatched boundary.

    Attributes:
        lower: The lower boundary supplied.
        upper: The upper boundary supplied.
    """

    def __init__(
        self,
        lower: Optional[Mapping[str, Any]],
        upper: Optional[Mapping[str, Any]],
        reason: str = "boundaries must name exactly one and the same key",
    ):
        self.lower = lower
        self.upper = upper
        super().__init__(
            f"Range query is enabled but {reason}: min={lower!r} max={upper!r}"
        )


class QueryConflictError(SplitValidationError):
    """The query filter already constrains the split key.

    Attributes:
        key: The split key.
        query: The conflicting filter.
    """

    def __init__(self, key: str, query: Mapping[str, Any]):
        self.key = key
        self.query = query
        super().__init__(
            f"Range query is enabled but split key '{key}' conflicts with "
            f"query filter {query!r}"
        )


class MalformedDescriptorError(SplitValidationError):
    """A connection URI does not follow mongodb://[user:pass@]hosts[/path]."""

    def __init__(self, uri: str, reason: str = "expected a mongodb:// URI"):
        self.uri = uri
        super().__init__(f"Malformed connection URI '{uri}': {reason}")
