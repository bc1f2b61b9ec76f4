# Exercises the per-chain fee policies against mock endpoints.
import pytest

from conftest import sample
from userop_engine.adapters.mock import MockRpcError
from userop_engine.chains.base import FeePolicy
from userop_engine.core.errors import GasEstimationError, UnsupportedChainError
from userop_engine.core.models import GasParams, UserOperation

SENDER = "0x" + "aa" * 20


@pytest.fixture
def user_op():
    return UserOperation(sender=SENDER, call_data=bytes.fromhex("1234"))


@pytest.mark.asyncio
async def test_primary_chain_cache_hit(estimator, chains, user_op):
    """
    GIVEN base fee 100 and priority fee 10 already cached for the primary chain
    WHEN an operation is estimated
    THEN fees come from the cache and only the call gas is fetched.
    """
    await estimator.gas_cache.set_base_fee(1, 100)
    await estimator.gas_cache.set_priority_fee(1, 10)
    hits_before = sample("cache_hits_total", {"type": "gas_prices"})

    gas = await estimator.estimate(user_op, 1)

    assert gas.max_fee_per_gas == 110
    assert gas.max_priority_fee_per_gas == 10
    assert gas.verification_gas_limit == 100_000
    assert gas.pre_verification_gas == 21_000
    assert gas.call_gas_limit == chains[1].eth.call_gas
    assert sample("cache_hits_total", {"type": "gas_prices"}) == hits_before + 1
    assert chains[1].eth.calls["eth_feeHistory"] == 0
    assert chains[1].eth.estimate_requests == [{"to": user_op.sender, "data": b"\x12\x34"}]


@pytest.mark.asyncio
async def test_primary_chain_cache_miss_reads_fee_history(estimator, chains, user_op):
    chains[1].eth.base_fees = [10, 20, 30, 40, 200]
    chains[1].eth.rewards = [[1, 2], [3, 4], [5, 6], [7, 30]]
    misses_before = sample("cache_misses_total", {"type": "gas_prices"})

    gas = await estimator.estimate(user_op, 1)

    assert gas.max_fee_per_gas == 230
    assert gas.max_priority_fee_per_gas == 30
    assert await estimator.gas_cache.get_base_fee(1) == 200
    assert await estimator.gas_cache.get_priority_fee(1) == 30
    assert sample("cache_misses_total", {"type": "gas_prices"}) == misses_before + 1


@pytest.mark.asyncio
async def test_partial_cache_counts_as_miss(estimator, chains, user_op):
    await estimator.gas_cache.set_base_fee(1, 100)
    await estimator.estimate(user_op, 1)
    assert chains[1].eth.calls["eth_feeHistory"] == 1


@pytest.mark.asyncio
async def test_call_gas_is_never_cached(estimator, chains, user_op):
    await estimator.estimate(user_op, 1)
    chains[1].eth.call_gas = 75_000
    gas = await estimator.estimate(user_op, 1)

    assert gas.call_gas_limit == 75_000
    assert chains[1].eth.calls["eth_feeHistory"] == 1
    assert chains[1].eth.calls["eth_estimateGas"] == 2


@pytest.mark.asyncio
async def test_scaled_chain_derives_from_primary(estimator, chains, user_op):
    primary = await estimator.estimate(user_op, 1)
    scaled = await estimator.estimate(user_op, 137)

    assert scaled.call_gas_limit == 2 * primary.call_gas_limit
    assert scaled.verification_gas_limit == 200_000
    assert scaled.pre_verification_gas == 40_000
    assert scaled.max_fee_per_gas == primary.max_fee_per_gas
    assert scaled.max_priority_fee_per_gas == primary.max_priority_fee_per_gas
    # The scaled chain's own endpoint is never queried.
    assert sum(chains[137].eth.calls.values()) == 0


@pytest.mark.asyncio
async def test_flat_price_chain(estimator, chains, user_op):
    gas = await estimator.estimate(user_op, 42161)

    assert gas.max_fee_per_gas == 777
    assert gas.max_priority_fee_per_gas == 0
    assert gas.verification_gas_limit == 150_000
    assert gas.pre_verification_gas == 50_000
    assert await estimator.gas_cache.get_base_fee(42161) == 777


@pytest.mark.asyncio
async def test_flat_price_chain_uses_cached_price(estimator, chains, user_op):
    await estimator.gas_cache.set_base_fee(42161, 1234)
    hits_before = sample("cache_hits_total", {"type": "arbitrum_gas_price"})

    gas = await estimator.estimate(user_op, 42161)

    assert gas.max_fee_per_gas == 1234
    assert gas.max_priority_fee_per_gas == 0
    assert chains[42161].eth.calls["eth_gasPrice"] == 0
    assert sample("cache_hits_total", {"type": "arbitrum_gas_price"}) == hits_before + 1


@pytest.mark.asyncio
async def test_unsupported_chain_fails_before_any_remote_call(estimator, chains, user_op):
    with pytest.raises(UnsupportedChainError) as excinfo:
        await estimator.estimate(user_op, 10)

    assert excinfo.value.chain_id == 10
    assert all(sum(w3.eth.calls.values()) == 0 for w3 in chains.values())


@pytest.mark.asyncio
async def test_transient_failures_are_retried(estimator, chains, user_op, sleeper):
    chains[1].eth.fail_next("eth_feeHistory", times=2)

    gas = await estimator.estimate(user_op, 1)

    assert gas.max_fee_per_gas > 0
    assert chains[1].eth.calls["eth_feeHistory"] == 3
    assert sleeper.delays == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_terminal_failure_aborts_estimate(estimator, chains, user_op):
    chains[1].eth.fail_next("eth_estimateGas", times=10)

    with pytest.raises(GasEstimationError) as excinfo:
        await estimator.estimate(user_op, 1)

    assert isinstance(excinfo.value.__cause__, MockRpcError)
    assert chains[1].eth.calls["eth_estimateGas"] == 3


@pytest.mark.asyncio
async def test_empty_fee_history_is_an_estimation_error(estimator, chains, user_op):
    chains[1].eth.base_fees = []
    with pytest.raises(GasEstimationError, match="No base fee available"):
        await estimator.estimate(user_op, 1)

    chains[1].eth.base_fees = [100]
    chains[1].eth.rewards = []
    with pytest.raises(GasEstimationError, match="No priority fee available"):
        await estimator.estimate(user_op, 1)


@pytest.mark.asyncio
async def test_new_chains_register_without_touching_dispatch(estimator, user_op):
    class FixedPolicy(FeePolicy):
        chain_id = 10
        cache_name = "fixed"
        verification_gas_limit = 1
        pre_verification_gas = 2

        async def estimate(self, estimator, user_op):
            return GasParams(call_gas_limit=3, verification_gas_limit=1, pre_verification_gas=2,
                             max_fee_per_gas=4, max_priority_fee_per_gas=0)

    estimator.register(FixedPolicy())

    assert 10 in estimator.supported_chains
    assert (await estimator.estimate(user_op, 10)).max_fee_per_gas == 4
