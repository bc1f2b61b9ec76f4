# /userop_engine/chains/base.py
# Defines the FeePolicy interface every supported chain registers with the GasEstimator.

from userop_engine.core.models import GasParams, UserOperation


class FeePolicy:
    """
    Prices gas for one chain.

    Implementations read fee data from ``estimator.gas_cache`` first, fall back
    to a remote query through ``estimator.call`` on a miss, and always ask
    ``estimator.estimate_call_gas_limit`` for the call-side limit.
    Adding a chain means registering a new policy, not editing the estimator.
    """
    chain_id: int
    # Logical name used for cache hit/miss metrics.
    cache_name: str
    verification_gas_limit: int
    pre_verification_gas: int

    async def estimate(self, estimator, user_op: UserOperation) -> GasParams:
        raise NotImplementedError
