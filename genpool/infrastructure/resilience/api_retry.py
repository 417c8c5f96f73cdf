"""Service for executing API calls with credential rotation and retries.

One logical call may try several credentials from the pool. Credentials the
provider rejects as expired/invalid are suspended and skipped without delay;
exponential backoff is reserved for service-wide outages (503, throttling).
Only the terminal outcome of the whole call is surfaced to the caller.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Set

from genpool.domain.errors import (
    CredentialsExhaustedError, ErrorClass, MaxRetryError, NoneAvailableError,
    ServiceUnavailableError, TerminalError,
)
from genpool.domain.events import dispatch_event
from genpool.domain.events.api_events import ApiCallFailed, ApiCallSucceeded, RetryScheduled
from genpool.domain.interfaces.ai_model import AIModel
from genpool.domain.models.common import AIResponse, PromptText
from genpool.infrastructure.credentials.classification import classify_error
from genpool.infrastructure.credentials.pool import CredentialPool

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_UNIT_S = 1.0

# Why the attempt loop stopped before running out of attempts.
STOP_NONE_AVAILABLE = "none_available"
STOP_EXHAUSTED = "exhausted"


@dataclass
class CallAttemptContext:
    """State of one logical call. Discarded when the call completes."""
    tried: Set[str] = field(default_factory=set, repr=False)
    attempts: int = 0
    last_exception: Optional[BaseException] = None
    last_error_class: Optional[ErrorClass] = None
    stop_reason: Optional[str] = None

    def record_attempt(self, secret: str) -> None:
        self.tried.add(secret)


class ResilientCallExecutor:
    """Runs one logical provider call across the credential pool."""

    def __init__(
        self,
        pool: CredentialPool,
        ai_model: AIModel,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_unit_s: float = DEFAULT_BACKOFF_UNIT_S,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the executor.

        Args:
            pool: The credential pool to draw secrets from and report to.
            ai_model: Provider adapter performing the actual call.
            max_attempts: Default attempt budget per logical call.
            backoff_unit_s: Seconds per backoff unit; attempt n waits 2**n units.
            sleep: Awaitable sleep used for backoff (injectable for tests).
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.pool = pool
        self.ai_model = ai_model
        self.max_attempts = max_attempts
        self.backoff_unit_s = backoff_unit_s
        self._sleep = sleep
        self.provider_name = getattr(ai_model, "provider_name", type(ai_model).__name__)

        logger.info(
            f"ResilientCallExecutor initialized: provider='{self.provider_name}', "
            f"max_attempts={max_attempts}, backoff_unit={backoff_unit_s}s"
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay before the attempt following `attempt` (1-based)."""
        return (2 ** attempt) * self.backoff_unit_s

    async def execute(self, payload: PromptText, max_attempts: Optional[int] = None) -> AIResponse:
        """Performs one logical call and returns the response text.

        Args:
            payload: The prompt to send.
            max_attempts: Overrides the executor's default attempt budget.

        Returns:
            The raw text returned by the first successful attempt.

        Raises:
            NoneAvailableError: The pool had no usable credential.
            CredentialsExhaustedError: Every usable credential failed or was rejected.
            ServiceUnavailableError: The service stayed unavailable across attempts.
            MaxRetryError: Attempts ran out on unclassified errors.
        """
        budget = max_attempts or self.max_attempts
        context = CallAttemptContext()
        attempt = 1

        while attempt <= budget:
            secret = self.pool.select()
            if secret is None:
                context.stop_reason = STOP_NONE_AVAILABLE
                break

            if secret in context.tried:
                logger.debug(f"Credential already tried in this call, rotating (attempt {attempt}/{budget})")
                attempt += 1
                continue

            context.record_attempt(secret)
            context.attempts = attempt
            start_time = time.perf_counter()
            try:
                text = await self.ai_model.invoke(secret, payload)
            except Exception as e:
                error_class = classify_error(e)
                context.last_exception = e
                context.last_error_class = error_class
                self.pool.report_failure(secret, e)
                dispatch_event(ApiCallFailed(
                    provider=self.provider_name,
                    attempt_number=attempt,
                    error_type=type(e).__name__,
                    error_class=error_class.value,
                    error_message=str(e),
                ))

                if self.pool.untried_usable_count(context.tried) == 0:
                    logger.warning(f"All usable credentials tried after attempt {attempt}/{budget}: {type(e).__name__}")
                    context.stop_reason = STOP_EXHAUSTED
                    break

                if error_class is ErrorClass.HARD_INVALID:
                    logger.warning(f"API key expired or invalid, trying next available key (attempt {attempt}/{budget})")
                elif error_class is ErrorClass.TRANSIENT_UNAVAILABLE and attempt < budget:
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        f"{self.provider_name} unavailable, retrying in {delay:.2f}s (attempt {attempt}/{budget})"
                    )
                    dispatch_event(RetryScheduled(provider=self.provider_name, attempt_number=attempt, delay_seconds=delay))
                    await self._sleep(delay)
                else:
                    logger.warning(f"Call failed on attempt {attempt}/{budget}: {type(e).__name__}: {e}")
                attempt += 1
                continue

            latency_ms = (time.perf_counter() - start_time) * 1000
            self.pool.report_success(secret)
            dispatch_event(ApiCallSucceeded(provider=self.provider_name, attempt_number=attempt, latency_ms=latency_ms))
            return text

        raise self._terminal_error(context, budget) from context.last_exception

    def _terminal_error(self, context: CallAttemptContext, budget: int) -> TerminalError:
        """Sweeps suspended credentials and builds the error for a failed call."""
        removed_count = self.pool.sweep()
        if removed_count > 0:
            logger.info(f"Removed {removed_count} expired/invalid API keys")

        tried = len(context.tried)
        working = self.pool.usable_count()
        last = context.last_exception

        if not context.tried:
            error: TerminalError = NoneAvailableError(
                "No valid API keys available. Please add new API keys.",
                attempts=0,
            )
        elif context.last_error_class is ErrorClass.TRANSIENT_UNAVAILABLE:
            error = ServiceUnavailableError(
                f"{self.provider_name} API is currently unavailable. Please try again in a few minutes. "
                f"(Attempted {context.attempts} times with {tried} different keys)",
                attempts=context.attempts, credentials_tried=tried, last_exception=last,
            )
        elif context.last_error_class is ErrorClass.HARD_INVALID or context.stop_reason is not None:
            error = CredentialsExhaustedError(
                f"All API keys are expired or invalid. Please add new valid API keys. Working keys: {working}",
                attempts=context.attempts, credentials_tried=tried, last_exception=last,
            )
        else:
            error = MaxRetryError(last, budget, credentials_tried=tried)

        logger.error(
            f"Call to {self.provider_name} failed definitively "
            f"({context.stop_reason or 'attempt budget spent'}): {error}"
        )
        return error
