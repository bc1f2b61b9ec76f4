# /userop_engine/chains/registry.py
# Built-in chains, their fee policies and their retry/rate-limit budgets.
from dataclasses import dataclass
from typing import Dict, List

from userop_engine.chains.arbitrum import FlatPriceFeePolicy
from userop_engine.chains.base import FeePolicy
from userop_engine.chains.ethereum import Eip1559FeePolicy
from userop_engine.chains.polygon import ScaledFeePolicy
from userop_engine.core.config import ARBITRUM_CHAIN_ID, ETHEREUM_CHAIN_ID, POLYGON_CHAIN_ID
from userop_engine.core.errors import UnsupportedChainError
from userop_engine.core.rate_limiter import RateLimiter
from userop_engine.core.retry import RetryConfig


@dataclass(frozen=True)
class ChainSpec:
    chain_id: int
    name: str
    confirmations: int


CHAINS: Dict[int, ChainSpec] = {
    ETHEREUM_CHAIN_ID: ChainSpec(ETHEREUM_CHAIN_ID, "ethereum", 12),
    POLYGON_CHAIN_ID: ChainSpec(POLYGON_CHAIN_ID, "polygon", 256),
    ARBITRUM_CHAIN_ID: ChainSpec(ARBITRUM_CHAIN_ID, "arbitrum", 64),
}


def get_chain(chain_id: int) -> ChainSpec:
    try:
        return CHAINS[chain_id]
    except KeyError:
        raise UnsupportedChainError(chain_id) from None


def default_fee_policies() -> List[FeePolicy]:
    return [
        Eip1559FeePolicy(ETHEREUM_CHAIN_ID),
        ScaledFeePolicy(POLYGON_CHAIN_ID, base_chain_id=ETHEREUM_CHAIN_ID),
        FlatPriceFeePolicy(ARBITRUM_CHAIN_ID),
    ]


def default_retry_configs() -> Dict[int, RetryConfig]:
    """One RetryConfig per chain, each with its own rate limiter (grants per second)."""
    return {
        ETHEREUM_CHAIN_ID: RetryConfig(
            max_attempts=3, initial_interval=0.1, max_interval=5.0, multiplier=2.0,
            rate_limiter=RateLimiter(1, 100),
        ),
        POLYGON_CHAIN_ID: RetryConfig(
            max_attempts=4, initial_interval=0.05, max_interval=3.0, multiplier=1.5,
            rate_limiter=RateLimiter(1, 200),
        ),
        ARBITRUM_CHAIN_ID: RetryConfig(
            max_attempts=3, initial_interval=0.2, max_interval=8.0, multiplier=2.0,
            rate_limiter=RateLimiter(1, 150),
        ),
    }
