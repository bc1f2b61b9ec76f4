# /userop_engine/adapters/mock.py
# In-memory stand-ins for AsyncWeb3 endpoints, used for testing the pipeline without a node.

from collections import Counter
from typing import Dict, List, Optional

from userop_engine.core.errors import ConfigurationError
from userop_engine.core.logger import get_logger

log = get_logger(__name__)


class MockRpcError(Exception):
    """Raised by the mock endpoint when a failure has been scheduled."""


class _MockCall:
    def __init__(self, eth: "MockEth", method: str, value):
        self.eth = eth
        self.method = method
        self.value = value

    async def call(self):
        self.eth._record(self.method)
        return self.value


class _MockFunctions:
    def __init__(self, eth: "MockEth"):
        self.eth = eth

    def getNonce(self, sender: str, key: int):  # noqa: N802 (contract function name)
        return _MockCall(self.eth, "getNonce", self.eth.nonces.get(sender.lower(), 0))


class _MockContract:
    def __init__(self, eth: "MockEth", address: str):
        self.address = address
        self.functions = _MockFunctions(eth)


class MockEth:
    """
    Scriptable ``w3.eth`` namespace.

    Counts every call by JSON-RPC method name and can be told to fail the next
    N calls of a method.
    """
    def __init__(
        self,
        base_fees: Optional[List[int]] = None,
        rewards: Optional[List[List[int]]] = None,
        gas_price: int = 1_000_000_000,
        call_gas: int = 50_000,
    ):
        self.base_fees = base_fees if base_fees is not None else [90, 95, 100, 105, 110]
        self.rewards = rewards if rewards is not None else [[1, 5], [1, 6], [2, 8], [2, 10]]
        self._gas_price = gas_price
        self.call_gas = call_gas
        self.nonces: Dict[str, int] = {}
        self.calls: Counter = Counter()
        self.estimate_requests: List[dict] = []
        self._failures: Dict[str, int] = {}

    def fail_next(self, method: str, times: int = 1):
        self._failures[method] = times

    def _record(self, method: str):
        self.calls[method] += 1
        remaining = self._failures.get(method, 0)
        if remaining:
            self._failures[method] = remaining - 1
            log.warning("MOCK_RPC_FORCED_FAILURE", method=method)
            raise MockRpcError(f"forced failure for {method}")

    async def fee_history(self, block_count: int, newest_block, reward_percentiles):
        self._record("eth_feeHistory")
        return {
            "oldestBlock": 100,
            "baseFeePerGas": list(self.base_fees),
            "reward": [list(row) for row in self.rewards],
            "gasUsedRatio": [0.5] * block_count,
        }

    async def _fetch_gas_price(self) -> int:
        self._record("eth_gasPrice")
        return self._gas_price

    @property
    def gas_price(self):
        return self._fetch_gas_price()

    async def estimate_gas(self, tx: dict) -> int:
        self._record("eth_estimateGas")
        self.estimate_requests.append(tx)
        return self.call_gas

    def contract(self, address: str, abi: list):
        return _MockContract(self, address)


class MockWeb3:
    def __init__(self, **kwargs):
        self.eth = MockEth(**kwargs)


class MockChainProviders:
    """Drop-in for ChainProviders backed by one MockWeb3 per chain."""
    def __init__(self, chains: Dict[int, MockWeb3]):
        self.chains = chains
        self.urls = {chain_id: f"mock://{chain_id}" for chain_id in chains}

    async def get(self, chain_id: int) -> MockWeb3:
        if chain_id not in self.chains:
            raise ConfigurationError(f"Chain ID {chain_id} not found in config")
        return self.chains[chain_id]
