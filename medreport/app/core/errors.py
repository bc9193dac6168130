"""Shared error types for the analysis pipeline."""
from dataclasses import dataclass


@dataclass(eq=False)
class AnalyzerError(Exception):
    code: str
    message: str
    detail: dict | None = None

    def __str__(self) -> str:
        return self.message


class RateLimitExceeded(AnalyzerError):
    """Rate limited on the final attempt."""

    def __init__(self, wait_seconds: int):
        super().__init__(
            code="RATE_LIMITED",
            message=f"Rate limit exceeded. Try again in {wait_seconds} seconds.",
            detail={"retry_after_seconds": wait_seconds},
        )
        self.wait_seconds = wait_seconds


class RequestTimedOut(AnalyzerError):
    def __init__(self):
        super().__init__(
            code="UPSTREAM_TIMEOUT",
            message="Request timed out. Please try again.",
        )


class ServerError(AnalyzerError):
    """Non-2xx, non-rate-limit response. Never retried."""

    def __init__(self, status: int, body: str):
        super().__init__(
            code="UPSTREAM_ERROR",
            message=f"Server error: {status}",
            detail={"status": status},
        )
        self.status = status
        self.body = body


class InvalidResponseFormat(AnalyzerError):
    def __init__(self, content_type: str = ""):
        super().__init__(
            code="INVALID_RESPONSE_FORMAT",
            message="Invalid response from server. Expected JSON.",
            detail={"content_type": content_type},
        )
        self.content_type = content_type


class MalformedPayload(AnalyzerError):
    """The model reply could not be parsed; keeps the raw text."""

    def __init__(self, raw_text: str, reason: str = ""):
        super().__init__(
            code="MALFORMED_PAYLOAD",
            message="Failed to parse AI response. Please try again.",
            detail={"reason": reason} if reason else None,
        )
        self.raw_text = raw_text


class NetworkError(AnalyzerError):
    def __init__(self, message: str):
        super().__init__(code="UPSTREAM_UNREACHABLE", message=message)


class AnalysisFailed(AnalyzerError):
    """The endpoint answered 200 but flagged ``success: false``."""

    def __init__(self, message: str = "Analysis failed"):
        super().__init__(code="ANALYSIS_FAILED", message=message)
