"""Error taxonomy for the recommendation service.

Only `TotalFailure` is expected to reach a client from the recommendation
endpoints; the other errors are converted to degraded results at the
component boundary that catches them.
"""

from typing import Any, Dict, Optional


class RecoException(Exception):
    """Base exception carrying an HTTP status and debug details."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class NotFoundIdentity(RecoException):
    """A non-guest identity that does not resolve to a known user."""

    def __init__(self, user_id: str):
        super().__init__(
            message=f"User '{user_id}' not found.",
            status_code=404,
            details={"user_id": user_id},
        )


class UpstreamUnavailable(RecoException):
    """A backing store (signals, activity, catalog, users) cannot be reached."""

    def __init__(self, store: str, error: Exception):
        super().__init__(
            message=f"{store} store unavailable: {error}",
            status_code=503,
            details={
                "store": store,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )
        self.store = store


class TotalFailure(RecoException):
    """Every recommendation source failed; no response can be built."""

    def __init__(self, failures: Dict[str, str]):
        super().__init__(
            message="Failed to fetch recommendations",
            status_code=500,
            details={"failures": failures},
        )
