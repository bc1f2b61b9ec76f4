# /userop_engine/chains/polygon.py
from userop_engine.chains.base import FeePolicy
from userop_engine.core.config import ETHEREUM_CHAIN_ID, POLYGON_CHAIN_ID
from userop_engine.core.logger import get_logger
from userop_engine.core.models import GasParams, UserOperation

log = get_logger(__name__)


class ScaledFeePolicy(FeePolicy):
    """
    Derives gas from another chain's estimate instead of querying its own market.

    The call gas limit is scaled by ``call_gas_multiplier`` and the fee caps are
    copied verbatim from the base chain's result.
    """
    cache_name = "gas_prices"
    verification_gas_limit = 200_000
    pre_verification_gas = 40_000
    call_gas_multiplier = 2

    def __init__(self, chain_id: int = POLYGON_CHAIN_ID, base_chain_id: int = ETHEREUM_CHAIN_ID):
        self.chain_id = chain_id
        self.base_chain_id = base_chain_id

    async def estimate(self, estimator, user_op: UserOperation) -> GasParams:
        # TODO: query this chain's own fee history once its fee market is modelled separately.
        base = await estimator.get_policy(self.base_chain_id).estimate(estimator, user_op)
        log.debug("SCALED_GAS_DERIVED", chain_id=self.chain_id, base_chain_id=self.base_chain_id)
        return GasParams(
            call_gas_limit=base.call_gas_limit * self.call_gas_multiplier,
            verification_gas_limit=self.verification_gas_limit,
            pre_verification_gas=self.pre_verification_gas,
            max_fee_per_gas=base.max_fee_per_gas,
            max_priority_fee_per_gas=base.max_priority_fee_per_gas,
        )
