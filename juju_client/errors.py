from __future__ import annotations


class JujuClientError(RuntimeError):
    pass


class RemoteError(JujuClientError):
    """A top-level error string reported by the controller for a request."""


class InvalidResultsError(JujuClientError):
    pass
