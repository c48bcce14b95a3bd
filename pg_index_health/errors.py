"""Exception hierarchy for pg-index-health."""

from __future__ import annotations


class PgIndexHealthError(Exception):
    """Base class for every error raised by pg-index-health."""


class InvalidConnectionStringError(PgIndexHealthError, ValueError):
    """A connection string is malformed. Never retried."""


class RegistryConfigurationError(PgIndexHealthError):
    """The diagnostic table is inconsistent. Raised at construction time only."""


class HostUnreachableError(PgIndexHealthError):
    """A host could not be reached during a role check or a query."""

    def __init__(self, host, cause: BaseException | None = None, message: str | None = None):
        self.host = host
        self.cause = cause
        if message is None:
            message = f"Host {host} is unreachable"
            if cause is not None:
                message += f": {type(cause).__name__}: {str(cause).strip()}"
        super().__init__(message)


class ClusterTimeoutError(HostUnreachableError):
    """Waiting for at least one host exceeded the per-call timeout."""


class TopologyError(PgIndexHealthError):
    """The set of live hosts does not describe a usable cluster."""


class NoPrimaryFoundError(TopologyError):
    """No host reported itself as the writable primary."""


class AmbiguousPrimaryError(TopologyError):
    """More than one host reported itself as the writable primary."""

    def __init__(self, primaries):
        self.primaries = tuple(primaries)
        names = ", ".join(str(p) for p in self.primaries)
        super().__init__(f"More than one primary found in cluster: {names}")


class DiagnosticQueryError(PgIndexHealthError):
    """A diagnostic query reached the server but failed there."""

    def __init__(self, diagnostic, host, cause: BaseException):
        self.diagnostic = diagnostic
        self.host = host
        self.cause = cause
        super().__init__(
            f"Diagnostic {diagnostic} failed on host {host}: "
            f"{type(cause).__name__}: {str(cause).strip()}"
        )
