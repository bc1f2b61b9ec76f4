import pytest

from prometheus_client import REGISTRY

from userop_engine.adapters.mock import MockChainProviders, MockWeb3
from userop_engine.chains.registry import default_fee_policies
from userop_engine.core.cache import GasCache
from userop_engine.core.gas_estimator import GasEstimator
from userop_engine.core.rate_limiter import RateLimiter
from userop_engine.core.retry import RetryConfig, RetryExecutor


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records delays and optionally advances a FakeClock."""
    def __init__(self, clock: FakeClock | None = None):
        self.delays = []
        self.clock = clock

    async def __call__(self, seconds: float):
        self.delays.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


def sample(name: str, labels: dict) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest.fixture
def chains():
    return {1: MockWeb3(), 137: MockWeb3(), 42161: MockWeb3(gas_price=777)}


@pytest.fixture
def estimator(chains, clock, sleeper):
    config = RetryConfig(max_attempts=3, initial_interval=0.1, max_interval=5.0, multiplier=2.0,
                         rate_limiter=RateLimiter(1, 1000, clock=clock))
    return GasEstimator(
        MockChainProviders(chains),
        GasCache(clock=clock),
        default_retry_config=config,
        executor=RetryExecutor(sleep=sleeper),
        policies=default_fee_policies(),
    )
