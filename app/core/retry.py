"""Bounded exponential backoff around flaky upstream calls."""

from __future__ import annotations

import enum
import logging
import time
from typing import Callable, TypeVar

import openai

from app.core.exceptions import QuotaExceededError

logger = logging.getLogger(__name__)

T = TypeVar("T")

QUOTA_MARKERS = ("quota", "limit")


class RetryDecision(str, enum.Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"
    QUOTA_EXCEEDED = "quota_exceeded"


def retry_with_backoff(
    operation: Callable[[], T],
    classify: Callable[[BaseException], RetryDecision],
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation`` until it succeeds or ``classify`` says to stop.

    Transient failures wait ``base_delay * 2**n`` seconds (n = 0, 1, ...)
    before the next attempt and the last error is re-raised once
    ``max_attempts`` is reached. Fatal failures are re-raised immediately.
    Quota exhaustion is raised as :class:`QuotaExceededError` without retry.
    """

    max_attempts = max(int(max_attempts), 1)
    for attempt in range(max_attempts):
        try:
            return operation()
        except Exception as exc:
            decision = classify(exc)
            if decision is RetryDecision.QUOTA_EXCEEDED:
                logger.error("Upstream quota exhausted: %s", exc)
                raise QuotaExceededError(details=str(exc)) from exc
            if decision is RetryDecision.FATAL or attempt == max_attempts - 1:
                raise

            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Transient upstream error (attempt %s/%s): %s. Retrying in %.1f s.",
                attempt + 1,
                max_attempts,
                exc,
                delay,
            )
            sleep(delay)

    raise RuntimeError("retry_with_backoff exhausted without result")  # pragma: no cover


def _status_code_of(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(exc, "status", None)
    return status if isinstance(status, int) else None


def classify_llm_error(exc: BaseException) -> RetryDecision:
    """Sort an OpenAI-compatible client error into a retry decision."""

    message = str(exc)
    lowered = message.lower()

    if "quota exceeded" in lowered or "insufficient_quota" in lowered:
        return RetryDecision.QUOTA_EXCEEDED

    if isinstance(exc, (openai.APITimeoutError, openai.APIConnectionError)):
        return RetryDecision.TRANSIENT

    status = _status_code_of(exc)
    if status == 429:
        if any(marker in lowered for marker in QUOTA_MARKERS):
            return RetryDecision.QUOTA_EXCEEDED
        return RetryDecision.TRANSIENT
    if status == 503:
        return RetryDecision.TRANSIENT
    return RetryDecision.FATAL
