from __future__ import annotations


class NICError(Exception):
    """Base error carrying the HTTP status and code reported to the caller."""

    status_code: int = 500
    code: str = "unknown_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class ConfigurationError(NICError):
    status_code = 500
    code = "missing_api_keys"


class MessageValidationError(NICError):
    status_code = 400
    code = "invalid_request"


class UpstreamError(NICError):
    """An external model call failed or returned something unusable."""

    status_code = 500
    code = "upstream_error"
