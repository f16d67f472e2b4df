"""
Failure taxonomy shared by the generation gateway and its HTTP client.
"""
from typing import Any, Optional


class GenerationError(Exception):
    code = "generation_error"
    status_code = 500
    retryable = False
    upstream_code: Optional[Any] = None

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidInput(GenerationError):
    code = "invalid_input"
    status_code = 400


class PayloadTooLarge(InvalidInput):
    code = "payload_too_large"
    status_code = 413


class MethodNotAllowed(GenerationError):
    code = "method_not_allowed"
    status_code = 405


class Misconfigured(GenerationError):
    code = "misconfigured"
    status_code = 500


class UpstreamError(GenerationError):
    """Explicit error reported by the image-generation service."""

    code = "upstream_error"
    status_code = 502

    def __init__(
        self,
        message: str,
        upstream_code: Optional[Any] = None,
        upstream_status: Optional[int] = None,
        rate_limited: bool = False,
        payload_too_large: bool = False,
        details: Any = None,
    ):
        super().__init__(message, details=details)
        self.upstream_code = upstream_code
        self.upstream_status = upstream_status
        self.rate_limited = rate_limited
        self.payload_too_large = payload_too_large
        if rate_limited:
            self.code = "rate_limited"
            self.status_code = 429
        elif payload_too_large:
            self.code = "payload_too_large"
            self.status_code = 413

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        # Rate limits need a cool-down the caller won't wait for.
        return not (self.rate_limited or self.payload_too_large)


class NoImageProduced(GenerationError):
    code = "no_image"
    status_code = 502


class SafetyFiltered(NoImageProduced):
    code = "safety_filtered"


class TransportError(GenerationError):
    code = "transport_error"
    status_code = 502
    retryable = True

    def __init__(self, message: str, timed_out: bool = False, details: Any = None):
        super().__init__(message, details=details)
        self.timed_out = timed_out
        if timed_out:
            self.status_code = 504


_ERRORS_BY_CODE: dict[str, type[GenerationError]] = {
    cls.code: cls
    for cls in (
        InvalidInput,
        PayloadTooLarge,
        MethodNotAllowed,
        Misconfigured,
        NoImageProduced,
        SafetyFiltered,
        TransportError,
    )
}


def error_from_response(status_code: int, body: Any) -> GenerationError:
    """Rebuild a gateway failure from an HTTP error response."""
    if not isinstance(body, dict):
        body = {}
    message = str(body.get("error") or f"Gateway returned HTTP {status_code}")
    code = body.get("code")
    details = body.get("details")

    if code in ("rate_limited", "upstream_error") or status_code == 429:
        return UpstreamError(
            message,
            upstream_code=body.get("upstream_code"),
            rate_limited=code == "rate_limited" or status_code == 429,
            details=details,
        )
    if code in _ERRORS_BY_CODE:
        cls = _ERRORS_BY_CODE[code]
        if cls is TransportError:
            return TransportError(message, timed_out=status_code == 504, details=details)
        return cls(message, details=details)

    if status_code == 405:
        return MethodNotAllowed(message, details=details)
    if status_code == 413:
        return PayloadTooLarge(message, details=details)
    if status_code >= 500:
        # Generic server error
        return UpstreamError(message, upstream_status=status_code, details=details)
    return InvalidInput(message, details=details)
