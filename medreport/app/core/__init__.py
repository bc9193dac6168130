from .errors import (
    AnalysisFailed,
    AnalyzerError,
    InvalidResponseFormat,
    MalformedPayload,
    NetworkError,
    RateLimitExceeded,
    RequestTimedOut,
    ServerError,
)
from .logging import get_logger, request_id_ctx, setup_logging

__all__ = [
    "AnalyzerError",
    "AnalysisFailed",
    "InvalidResponseFormat",
    "MalformedPayload",
    "NetworkError",
    "RateLimitExceeded",
    "RequestTimedOut",
    "ServerError",
    "get_logger",
    "request_id_ctx",
    "setup_logging",
]
