# /userop_engine/core/retry.py
# Exponential backoff around every outbound remote call, gated by the chain's rate limiter.
import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_not_exception_type,
    stop_after_attempt,
    stop_before_delay,
    wait_exponential,
)

from userop_engine.core.errors import ConfigurationError, RetryExhaustedError, UnsupportedChainError
from userop_engine.core.logger import get_logger, record_rpc_call, Timer
from userop_engine.core.rate_limiter import RateLimiter

log = get_logger(__name__)

T = TypeVar("T")

# Pause between admission checks while the limiter is saturated.
RATE_LIMIT_BACKOFF = 0.1

# Failures that no amount of waiting fixes.
NON_RETRYABLE = (ConfigurationError, UnsupportedChainError)


@dataclass(frozen=True)
class RetryConfig:
    """
    Backoff policy for one chain.

    The delay after the n-th failed attempt is
    ``min(initial_interval * multiplier ** (n - 1), max_interval)`` and the whole
    loop is bounded by ``max_interval * max_attempts`` seconds.
    """
    max_attempts: int = 3
    initial_interval: float = 0.1
    max_interval: float = 10.0
    multiplier: float = 2.0
    rate_limiter: RateLimiter = field(default_factory=lambda: RateLimiter(1, 100))

    @property
    def max_elapsed(self) -> float:
        return self.max_interval * self.max_attempts

    def get_delay(self, attempt: int) -> float:
        """Delay before retrying after ``attempt`` (1-indexed) has failed."""
        return min(self.initial_interval * self.multiplier ** (attempt - 1), self.max_interval)


class RetryExecutor:
    """
    Runs repeatable remote operations with rate limiting and exponential backoff.

    ``operation`` must be a zero-argument coroutine factory that is safe to call
    more than once (a read, or an otherwise idempotent request). This is not
    checked: passing a non-repeatable write may duplicate its side effects.
    """
    def __init__(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        self._sleep = sleep

    async def _admit(self, chain_id: int, limiter: RateLimiter):
        while not await limiter.admit(chain_id):
            await self._sleep(RATE_LIMIT_BACKOFF)

    async def run(
        self,
        chain_id: int,
        operation: Callable[[], Awaitable[T]],
        config: RetryConfig,
        method: str = "operation",
    ) -> T:
        def before_sleep(retry_state: RetryCallState):
            log.warning(
                "RPC_RETRY_SCHEDULED",
                chain_id=chain_id,
                method=method,
                attempt=retry_state.attempt_number,
                sleep=retry_state.next_action.sleep,
                error=str(retry_state.outcome.exception()),
            )

        retrying = AsyncRetrying(
            retry=retry_if_not_exception_type(NON_RETRYABLE),
            stop=stop_after_attempt(config.max_attempts) | stop_before_delay(config.max_elapsed),
            wait=wait_exponential(
                multiplier=config.initial_interval,
                exp_base=config.multiplier,
                max=config.max_interval,
            ),
            before_sleep=before_sleep,
            sleep=self._sleep,
        )

        timer = Timer()
        try:
            async for attempt in retrying:
                with attempt:
                    await self._admit(chain_id, config.rate_limiter)
                    result = await operation()
        except RetryError as e:
            record_rpc_call(chain_id, method, False, timer.elapsed())
            last = e.last_attempt
            error = last.exception()
            if last.attempt_number >= config.max_attempts:
                log.error("RPC_CALL_FAILED", chain_id=chain_id, method=method, attempts=last.attempt_number, error=str(error))
                raise error
            log.error("RPC_RETRY_BUDGET_EXHAUSTED", chain_id=chain_id, method=method, attempts=last.attempt_number, max_elapsed=config.max_elapsed)
            raise RetryExhaustedError(
                f"{method} on chain {chain_id} gave up after {last.attempt_number} attempts ({config.max_elapsed}s budget)"
            ) from error
        except NON_RETRYABLE:
            record_rpc_call(chain_id, method, False, timer.elapsed())
            raise

        record_rpc_call(chain_id, method, True, timer.elapsed())
        return result
