# /userop_engine/chains/ethereum.py
from typing import Tuple

from userop_engine.chains.base import FeePolicy
from userop_engine.core.config import ETHEREUM_CHAIN_ID
from userop_engine.core.errors import GasEstimationError
from userop_engine.core.logger import get_logger, record_cache_hit, record_cache_miss
from userop_engine.core.models import GasParams, UserOperation

log = get_logger(__name__)


class Eip1559FeePolicy(FeePolicy):
    """
    Base fee plus priority tip, sampled from ``eth_feeHistory``.

    The base fee is the last sample returned (the pending block's), the tip is
    the median reward of the newest block.
    """
    cache_name = "gas_prices"
    verification_gas_limit = 100_000
    pre_verification_gas = 21_000
    fee_history_blocks = 4
    reward_percentiles = [10.0, 50.0]

    def __init__(self, chain_id: int = ETHEREUM_CHAIN_ID):
        self.chain_id = chain_id

    async def fee_components(self, estimator) -> Tuple[int, int]:
        """Returns ``(base_fee, priority_fee)``, from cache when both are fresh."""
        cache = estimator.gas_cache
        base_fee = await cache.get_base_fee(self.chain_id)
        priority_fee = await cache.get_priority_fee(self.chain_id)
        if base_fee is not None and priority_fee is not None:
            record_cache_hit(self.cache_name)
            return base_fee, priority_fee

        record_cache_miss(self.cache_name)
        history = await estimator.call(
            self.chain_id,
            "eth_feeHistory",
            lambda w3: w3.eth.fee_history(self.fee_history_blocks, "latest", self.reward_percentiles),
        )

        base_fees = history.get("baseFeePerGas") or []
        if not base_fees:
            raise GasEstimationError("No base fee available")
        rewards = history.get("reward") or []
        if not rewards or len(rewards[-1]) < 2:
            raise GasEstimationError("No priority fee available")

        base_fee = int(base_fees[-1])
        priority_fee = int(rewards[-1][1])
        await cache.set_base_fee(self.chain_id, base_fee)
        await cache.set_priority_fee(self.chain_id, priority_fee)
        log.debug("FEE_HISTORY_REFRESHED", chain_id=self.chain_id, base_fee=base_fee, priority_fee=priority_fee)
        return base_fee, priority_fee

    async def estimate(self, estimator, user_op: UserOperation) -> GasParams:
        base_fee, priority_fee = await self.fee_components(estimator)
        call_gas_limit = await estimator.estimate_call_gas_limit(self.chain_id, user_op)
        return GasParams(
            call_gas_limit=call_gas_limit,
            verification_gas_limit=self.verification_gas_limit,
            pre_verification_gas=self.pre_verification_gas,
            max_fee_per_gas=base_fee + priority_fee,
            max_priority_fee_per_gas=priority_fee,
        )
