from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal, Union


@dataclass(frozen=True)
class ExecutorConfig:
    max_attempts: int = 4
    base_delay_ms: int = 2000
    timeout_ms: int = 30000
    jitter_ms: int = 500

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay_ms < 0 or self.timeout_ms < 0 or self.jitter_ms < 0:
            raise ValueError("delays and timeouts must be >= 0")


@dataclass(frozen=True)
class GenerateRequest:
    prompt: str

    def payload(self) -> dict[str, str]:
        return {"text": self.prompt}


@dataclass
class RawResponse:
    status_code: int
    text: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return ""


@dataclass
class Success:
    body: Any
    kind: Literal["success"] = "success"


@dataclass
class RateLimited:
    retry_after_seconds: int | None = None
    kind: Literal["rate_limited"] = "rate_limited"


@dataclass
class Timeout:
    kind: Literal["timeout"] = "timeout"


@dataclass
class TransientError:
    message: str
    kind: Literal["transient_error"] = "transient_error"


@dataclass
class FatalError:
    message: str
    status_code: int | None = None
    body: str | None = None
    reason: Literal["server_error", "invalid_response_format"] = "server_error"
    kind: Literal["fatal_error"] = "fatal_error"


AttemptOutcome = Union[Success, RateLimited, Timeout, TransientError, FatalError]