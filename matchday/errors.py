"""Domain error taxonomy.

Unauthorized and InvalidRequest are surfaced to webhook callers as the HTTP
response. UpstreamUnavailable never leaves the article writer: it always ends
in a local fallback. PersistenceFailure wraps data-access errors.
"""


class MatchdayError(Exception):
    """Base error with the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class Unauthorized(MatchdayError):
    """Bad or missing webhook signature."""

    status_code = 401


class InvalidRequest(MatchdayError):
    """Missing required field."""

    status_code = 400


class UpstreamUnavailable(MatchdayError):
    """Generative-text or image capability failed."""

    status_code = 502


class PersistenceFailure(MatchdayError):
    """Data-access layer error."""

    status_code = 500
