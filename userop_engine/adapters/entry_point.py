# /userop_engine/adapters/entry_point.py
from typing import Dict

from eth_utils import to_checksum_address

from userop_engine.core.errors import ConfigurationError
from userop_engine.core.logger import get_logger
from userop_engine.core.rpc import ChainProviders

log = get_logger(__name__)

ENTRY_POINT_NONCE_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "sender", "type": "address"},
            {"internalType": "uint192", "name": "key", "type": "uint192"},
        ],
        "name": "getNonce",
        "outputs": [{"internalType": "uint256", "name": "nonce", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    }
]


class EntryPointAdapter:
    """Read-only access to the entry point contract on each configured chain."""
    def __init__(self, providers: ChainProviders, entry_points: Dict[int, str]):
        self.providers = providers
        self.entry_points = {chain_id: to_checksum_address(addr) for chain_id, addr in entry_points.items()}

    async def get_nonce(self, chain_id: int, sender: str, key: int = 0) -> int:
        address = self.entry_points.get(chain_id)
        if address is None:
            raise ConfigurationError(f"No entry point configured for chain {chain_id}")
        w3 = await self.providers.get(chain_id)
        contract = w3.eth.contract(address=address, abi=ENTRY_POINT_NONCE_ABI)
        nonce = await contract.functions.getNonce(to_checksum_address(sender), key).call()
        log.debug("ENTRY_POINT_NONCE_READ", chain_id=chain_id, sender=sender, nonce=nonce)
        return int(nonce)
