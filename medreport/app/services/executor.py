"""Resilient execution of a single generation request.

Each attempt is classified into an ``AttemptOutcome``; the retry loop then
decides whether to wait and try again or to give up. Rate limits, timeouts
and network errors are retried with exponential backoff. Server errors and
non-JSON success responses are raised immediately.
"""
from __future__ import annotations

import asyncio
import json
import math
import random
from typing import Any, Awaitable, Callable

import httpx

from medreport.app.core.errors import (
    AnalyzerError,
    InvalidResponseFormat,
    NetworkError,
    RateLimitExceeded,
    RequestTimedOut,
    ServerError,
)
from medreport.app.core.logging import get_logger
from medreport.app.providers.base import Transport
from medreport.app.providers.types import (
    AttemptOutcome,
    ExecutorConfig,
    FatalError,
    GenerateRequest,
    RateLimited,
    RawResponse,
    Success,
    Timeout,
    TransientError,
)

logger = get_logger(__name__)

DEFAULT_TIMEOUT_MS = 30000

Sleep = Callable[[float], Awaitable[Any]]


def parse_body(text: str) -> Any:
    """Parse a response body as JSON, returning None when it is not JSON."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def _positive_seconds(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(seconds) or seconds <= 0:
        return None
    return math.ceil(seconds)


def retry_hint(body: Any) -> int | None:
    """Return the server's retry-after hint in seconds, if the body has one."""
    if not isinstance(body, dict):
        return None
    candidates = [body.get("retryAfterSeconds"), body.get("retryAfter")]
    error = body.get("error")
    if isinstance(error, dict):
        candidates.append(error.get("retryAfterSeconds"))
    for candidate in candidates:
        seconds = _positive_seconds(candidate)
        if seconds is not None:
            return seconds
    return None


def classify(raw: RawResponse) -> AttemptOutcome:
    """Classify a received HTTP response."""
    body = parse_body(raw.text)
    hint = retry_hint(body)
    if raw.status_code == 429 or hint is not None:
        return RateLimited(retry_after_seconds=hint)

    if not 200 <= raw.status_code < 300:
        return FatalError(
            message=f"Server error: {raw.status_code}",
            status_code=raw.status_code,
            body=raw.text,
            reason="server_error",
        )

    if "application/json" not in raw.content_type.lower():
        return FatalError(
            message="Invalid response format",
            status_code=raw.status_code,
            body=raw.content_type,
            reason="invalid_response_format",
        )

    return Success(body=body)


def backoff_ms(attempt: int, config: ExecutorConfig) -> int:
    return config.base_delay_ms * 2 ** (attempt - 1)


class RequestExecutor:
    """Runs a generation request through a bounded retry loop.

    Attempts never overlap. ``sleep`` and ``rng`` are injectable so tests can
    record waits without actually suspending.
    """

    def __init__(
        self,
        transport: Transport,
        config: ExecutorConfig | None = None,
        sleep: Sleep = asyncio.sleep,
        rng: random.Random | None = None,
    ):
        self.transport = transport
        self.config = config or ExecutorConfig()
        self._sleep = sleep
        self._rng = rng or random.Random()

    def compute_wait_ms(
        self, outcome: AttemptOutcome, attempt: int, config: ExecutorConfig
    ) -> float:
        """Milliseconds to wait before the next attempt.

        A server-declared retry hint is honoured as-is; otherwise the wait is
        exponential in the attempt number plus random jitter.
        """
        if isinstance(outcome, RateLimited) and outcome.retry_after_seconds:
            return float(outcome.retry_after_seconds * 1000)
        jitter = self._rng.uniform(0, config.jitter_ms) if config.jitter_ms else 0.0
        return backoff_ms(attempt, config) + jitter

    async def run_attempt(self, request: GenerateRequest, config: ExecutorConfig) -> AttemptOutcome:
        """Perform one attempt under the per-attempt deadline."""
        # A zero timeout falls back to the default deadline; attempts are always bounded.
        deadline = (config.timeout_ms or DEFAULT_TIMEOUT_MS) / 1000
        try:
            async with asyncio.timeout(deadline):
                raw = await self.transport.send(request)
        except TimeoutError:
            return Timeout()
        except httpx.TimeoutException:
            return Timeout()
        except httpx.TransportError as exc:
            return TransientError(message=str(exc) or exc.__class__.__name__)
        return classify(raw)

    def _fatal(self, outcome: FatalError) -> AnalyzerError:
        if outcome.reason == "invalid_response_format":
            return InvalidResponseFormat(outcome.body or "")
        return ServerError(outcome.status_code or 0, outcome.body or "")

    def _exhausted(
        self, outcome: AttemptOutcome, attempt: int, config: ExecutorConfig
    ) -> AnalyzerError:
        if isinstance(outcome, RateLimited):
            wait_seconds = outcome.retry_after_seconds or math.ceil(
                backoff_ms(attempt, config) / 1000
            )
            return RateLimitExceeded(wait_seconds)
        if isinstance(outcome, Timeout):
            return RequestTimedOut()
        if isinstance(outcome, TransientError):
            return NetworkError(outcome.message)
        raise TypeError(f"Outcome is not retryable: {outcome!r}")

    async def execute(self, prompt: str, config: ExecutorConfig | None = None) -> Any:
        """Send ``prompt`` and return the parsed JSON envelope.

        Raises:
            RateLimitExceeded, RequestTimedOut, NetworkError: retryable
                failure on the final attempt.
            ServerError, InvalidResponseFormat: on the first occurrence.
        """
        config = config or self.config
        request = GenerateRequest(prompt=prompt)

        for attempt in range(1, config.max_attempts + 1):
            outcome = await self.run_attempt(request, config)

            if isinstance(outcome, Success):
                if attempt > 1:
                    logger.info(
                        "Generation succeeded after retry",
                        data={"attempt": attempt, "max_attempts": config.max_attempts},
                    )
                return outcome.body

            if isinstance(outcome, FatalError):
                logger.error(
                    "Generation request failed",
                    data={
                        "attempt": attempt,
                        "status": outcome.status_code,
                        "reason": outcome.reason,
                    },
                )
                raise self._fatal(outcome)

            if attempt == config.max_attempts:
                logger.error(
                    "Generation retries exhausted",
                    data={"attempt": attempt, "outcome": outcome.kind},
                )
                raise self._exhausted(outcome, attempt, config)

            wait_ms = self.compute_wait_ms(outcome, attempt, config)
            logger.warning(
                f"Attempt {attempt} of {config.max_attempts} failed ({outcome.kind}), "
                f"retrying in {wait_ms / 1000:.2f}s",
                data={
                    "attempt": attempt,
                    "max_attempts": config.max_attempts,
                    "outcome": outcome.kind,
                    "wait_ms": round(wait_ms),
                },
            )
            await self._sleep(wait_ms / 1000)

        raise NetworkError("Failed to get response after retries")
