# /userop_engine/chains/arbitrum.py
from userop_engine.chains.base import FeePolicy
from userop_engine.core.config import ARBITRUM_CHAIN_ID
from userop_engine.core.logger import get_logger, record_cache_hit, record_cache_miss
from userop_engine.core.models import GasParams, UserOperation

log = get_logger(__name__)


class FlatPriceFeePolicy(FeePolicy):
    """Single ``eth_gasPrice`` value as the fee cap, no priority tip."""
    cache_name = "arbitrum_gas_price"
    verification_gas_limit = 150_000
    pre_verification_gas = 50_000

    def __init__(self, chain_id: int = ARBITRUM_CHAIN_ID):
        self.chain_id = chain_id

    async def gas_price(self, estimator) -> int:
        cache = estimator.gas_cache
        # The flat price lives in the base fee slot.
        price = await cache.get_base_fee(self.chain_id)
        if price is not None:
            record_cache_hit(self.cache_name)
            return price

        record_cache_miss(self.cache_name)
        price = int(await estimator.call(self.chain_id, "eth_gasPrice", lambda w3: w3.eth.gas_price))
        await cache.set_base_fee(self.chain_id, price)
        log.debug("GAS_PRICE_REFRESHED", chain_id=self.chain_id, gas_price=price)
        return price

    async def estimate(self, estimator, user_op: UserOperation) -> GasParams:
        price = await self.gas_price(estimator)
        call_gas_limit = await estimator.estimate_call_gas_limit(self.chain_id, user_op)
        return GasParams(
            call_gas_limit=call_gas_limit,
            verification_gas_limit=self.verification_gas_limit,
            pre_verification_gas=self.pre_verification_gas,
            max_fee_per_gas=price,
            max_priority_fee_per_gas=0,
        )
