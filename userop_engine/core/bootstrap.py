# /userop_engine/core/bootstrap.py
# Builds the shared, process-lifetime services and wires them together.
from dataclasses import dataclass
from typing import Dict

from userop_engine.adapters.entry_point import EntryPointAdapter
from userop_engine.chains.registry import default_fee_policies, default_retry_configs
from userop_engine.core.cache import GasCache
from userop_engine.core.config import ChainConfig
from userop_engine.core.gas_estimator import GasEstimator
from userop_engine.core.logger import get_logger
from userop_engine.core.rpc import ChainProviders, ProviderCache
from userop_engine.core.userop import OperationAssembler

log = get_logger(__name__)


@dataclass
class Services:
    gas_cache: GasCache
    provider_cache: ProviderCache
    providers: ChainProviders
    gas_estimator: GasEstimator
    entry_point: EntryPointAdapter
    assembler: OperationAssembler

    def purge_expired(self) -> int:
        """Proactive sweep of every cache; lazy eviction still guards each read."""
        caches = (
            self.gas_cache.base_fee_cache,
            self.gas_cache.priority_fee_cache,
            self.gas_cache.nonce_cache,
            self.provider_cache.provider_cache,
        )
        return sum(cache.purge_expired() for cache in caches)


def build_services(chains: Dict[int, ChainConfig]) -> Services:
    gas_cache = GasCache()
    provider_cache = ProviderCache()
    providers = ChainProviders({chain_id: c.rpc_url for chain_id, c in chains.items()}, provider_cache)
    # Derived policies are only usable when the chain they derive from is configured too.
    policies = [
        p for p in default_fee_policies()
        if p.chain_id in chains and getattr(p, "base_chain_id", p.chain_id) in chains
    ]
    gas_estimator = GasEstimator(
        providers,
        gas_cache,
        retry_configs=default_retry_configs(),
        policies=policies,
    )
    entry_point = EntryPointAdapter(providers, {chain_id: c.entry_point_address for chain_id, c in chains.items()})
    assembler = OperationAssembler(gas_estimator, nonce_source=entry_point)
    log.info("SERVICES_BUILT", chains=sorted(chains))
    return Services(gas_cache, provider_cache, providers, gas_estimator, entry_point, assembler)
