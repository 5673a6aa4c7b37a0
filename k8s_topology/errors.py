class TopologyError(Exception):
    """Base class for errors raised while building a topology graph."""


class NotFoundError(TopologyError):
    """
    The referenced object does not exist.

    Fatal when raised for the seed resource of a build, downgraded to a
    warning for anything reached while expanding the graph.
    """

    def __init__(self, kind: str, name: str, namespace: str | None = None) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        location = f" in namespace {namespace}" if namespace else ""
        super().__init__(f"{kind} {name!r} not found{location}")


class K8sAPIError(TopologyError):
    """Transport, authorization or server-side failure talking to the cluster."""

    def __init__(self, message: str, status: int | None = None, reason: str | None = None) -> None:
        self.status = status
        self.reason = reason
        super().__init__(message)


class InvalidSelectorError(TopologyError, ValueError):
    """A label selector could not be parsed (e.g. unknown operator)."""


class UnsupportedKindError(TopologyError, ValueError):
    """The requested seed kind cannot start a graph build."""
