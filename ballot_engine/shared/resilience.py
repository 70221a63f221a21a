# ballot_engine/shared/resilience.py
import logging
import time
from enum import Enum
from typing import Any, Callable, Coroutine, Dict, Tuple, Type

import structlog
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from ballot_engine.shared.config import settings

logger = structlog.get_logger()

# --- 1. Custom Exceptions ---

class ResilienceError(Exception):
    """Base class for resilience-related errors."""
    pass

class CircuitBreakerOpenError(ResilienceError):
    """Raised when a call is blocked because the Circuit Breaker is OPEN."""
    def __init__(self, service_name: str, reset_timeout: float):
        self.service_name = service_name
        self.reset_timeout = reset_timeout
        super().__init__(f"Circuit Breaker for {service_name} is OPEN. Retrying in {reset_timeout}s.")

# --- 2. Circuit Breaker Implementation ---

class CircuitState(str, Enum):
    CLOSED = "closed"     # Normal operation
    OPEN = "open"         # Failing, blocking requests
    HALF_OPEN = "half_open" # Testing recovery

class CircuitBreaker:
    """
    Implements the Circuit Breaker pattern.

    Stops hammering the ledger RPC node once it keeps failing, so ballot
    requests degrade to demo mode immediately instead of waiting on timeouts.
    """
    def __init__(self, name: str, failure_threshold: int = 5, recovery_timeout: int = 30):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout

        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = 0.0

    async def a_call(self, func: Callable[..., Coroutine[Any, Any, Any]], *args, **kwargs) -> Any:
        """
        Executes an async function (Coroutine) if the circuit is CLOSED or HALF-OPEN.
        """
        self._check_state()

        try:
            result = await func(*args, **kwargs)
            self._handle_success()
            return result
        except Exception:
            self._handle_failure()
            raise

    def _check_state(self):
        """Internal logic to check if the circuit allows execution."""
        if self.state == CircuitState.OPEN:
            if time.time() - self.last_failure_time > self.recovery_timeout:
                self._transition_to(CircuitState.HALF_OPEN)
            else:
                raise CircuitBreakerOpenError(self.name, self.recovery_timeout)

    def _handle_success(self):
        """Called when a request succeeds. Closes the circuit if it was recovering."""
        if self.state == CircuitState.HALF_OPEN:
            self._reset()
        else:
            self.failure_count = 0

    def _handle_failure(self):
        """Called when a request fails. Increments counter or trips the breaker."""
        self.failure_count += 1
        self.last_failure_time = time.time()

        if self.state == CircuitState.HALF_OPEN:
            # Failed right after trying to recover: back to OPEN
            self._transition_to(CircuitState.OPEN)
        elif self.failure_count >= self.failure_threshold:
            self._transition_to(CircuitState.OPEN)

    def _transition_to(self, new_state: CircuitState):
        self.state = new_state
        logger.warning("circuit_breaker_state_change",
                       service=self.name,
                       state=new_state,
                       failures=self.failure_count)

    def _reset(self):
        self.failure_count = 0
        self.state = CircuitState.CLOSED
        logger.info("circuit_breaker_recovered", service=self.name)

# Registry to hold singleton instances of breakers
_breakers: Dict[str, CircuitBreaker] = {}

def get_circuit_breaker(service_name: str) -> CircuitBreaker:
    if service_name not in _breakers:
        _breakers[service_name] = CircuitBreaker(
            name=service_name,
            failure_threshold=settings.LEDGER_BREAKER_THRESHOLD,
            recovery_timeout=settings.LEDGER_BREAKER_RESET_SEC,
        )
    return _breakers[service_name]

# --- 3. Bounded Retry Policy (Tenacity) ---

def bounded_attempts(
    retry_on: Tuple[Type[BaseException], ...],
    attempts: int = settings.LEDGER_READ_ATTEMPTS,
    deadline: float = settings.LEDGER_TIMEOUT_SEC,
) -> AsyncRetrying:
    """
    Async retry controller for idempotent ledger reads.

    Strategy:
    - Stop: after `attempts` tries or once `deadline` seconds have elapsed,
      whichever comes first. A stalled node is never retried indefinitely.
    - Wait: short exponential backoff capped at 2s.
    - Retry: only on the given transport exception types; program errors
      surface immediately.

    Usage:
        async for attempt in bounded_attempts((httpx.TransportError,)):
            with attempt:
                return await do_read()
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)) | stop_after_delay(deadline),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        retry=retry_if_exception_type(retry_on),
        before_sleep=before_sleep_log(logging.getLogger(__name__), logging.WARNING),
        reraise=True,
    )
