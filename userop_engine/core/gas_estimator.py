# /userop_engine/core/gas_estimator.py
# Per-chain gas estimation: fee policies for the price side, eth_estimateGas for the call side.
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, TypeVar

from web3 import AsyncWeb3

from userop_engine.core.cache import GasCache
from userop_engine.core.errors import GasEstimationError, UnsupportedChainError, UserOpError
from userop_engine.core.logger import get_logger, record_gas_estimation, Timer
from userop_engine.core.models import GasParams, UserOperation
from userop_engine.core.retry import RetryConfig, RetryExecutor
from userop_engine.core.rpc import ChainProviders

log = get_logger(__name__)

T = TypeVar("T")


class GasEstimator:
    """
    Dispatches estimation to the fee policy registered for a chain.

    Fee data goes through the shared GasCache; every remote call goes through
    the retry executor with the chain's RetryConfig. The call gas limit is
    estimated fresh on every request because it depends on the call data.
    """
    def __init__(
        self,
        providers: ChainProviders,
        gas_cache: GasCache,
        retry_configs: Optional[Dict[int, RetryConfig]] = None,
        default_retry_config: Optional[RetryConfig] = None,
        executor: Optional[RetryExecutor] = None,
        policies: Iterable[Any] = (),
    ):
        self.providers = providers
        self.gas_cache = gas_cache
        self.retry_configs = dict(retry_configs or {})
        self.default_retry_config = default_retry_config or RetryConfig()
        self.executor = executor or RetryExecutor()
        self._policies: Dict[int, Any] = {}
        for policy in policies:
            self.register(policy)
        log.info("GAS_ESTIMATOR_INITIALIZED", chains=sorted(self._policies))

    def register(self, policy):
        """Adds or replaces the fee policy for ``policy.chain_id``."""
        self._policies[policy.chain_id] = policy

    def get_policy(self, chain_id: int):
        policy = self._policies.get(chain_id)
        if policy is None:
            raise UnsupportedChainError(chain_id)
        return policy

    @property
    def supported_chains(self):
        return sorted(self._policies)

    def retry_config_for(self, chain_id: int) -> RetryConfig:
        return self.retry_configs.get(chain_id, self.default_retry_config)

    async def estimate(self, user_op: UserOperation, chain_id: int) -> GasParams:
        timer = Timer()
        try:
            policy = self.get_policy(chain_id)
            gas = await policy.estimate(self, user_op)
        except UserOpError as e:
            log.error("GAS_ESTIMATION_FAILED", chain_id=chain_id, error=str(e))
            raise
        finally:
            record_gas_estimation(chain_id, timer.elapsed())
        log.debug("GAS_ESTIMATED", chain_id=chain_id, **gas.model_dump())
        return gas

    async def call(self, chain_id: int, method: str, request: Callable[[AsyncWeb3], Awaitable[T]]) -> T:
        """
        Runs ``request`` against the chain's endpoint under its retry policy.

        ``request`` is re-invoked on every attempt and must be a read.
        Provider errors surface as GasEstimationError.
        """
        w3 = await self.providers.get(chain_id)

        async def attempt():
            try:
                return await request(w3)
            except UserOpError:
                raise
            except Exception as e:
                raise GasEstimationError(f"{method} failed: {e}") from e

        return await self.executor.run(chain_id, attempt, self.retry_config_for(chain_id), method=method)

    async def estimate_call_gas_limit(self, chain_id: int, user_op: UserOperation) -> int:
        tx = {"to": user_op.sender, "data": user_op.call_data}
        gas = await self.call(chain_id, "eth_estimateGas", lambda w3: w3.eth.estimate_gas(tx))
        return int(gas)
