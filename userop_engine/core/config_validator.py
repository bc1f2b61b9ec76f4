# /userop_engine/core/config_validator.py
# Run at startup to validate chain configuration before any component is built.
from dataclasses import dataclass
from typing import Dict, Optional

from web3 import Web3

from userop_engine.core.config import ChainConfig, Settings, settings as default_settings
from userop_engine.core.errors import ConfigurationError
from userop_engine.core.logger import log


@dataclass(frozen=True)
class ContractAddresses:
    entry_point: str
    wallet_factory: Optional[str]
    paymaster: Optional[str]


def _address(value: Optional[str], label: str, required: bool = False) -> Optional[str]:
    if not value:
        if required:
            raise ConfigurationError(f"Missing {label} address")
        return None
    if not Web3.is_address(value):
        raise ConfigurationError(f"Invalid {label} address: {value}")
    return Web3.to_checksum_address(value)


def get_chain_config(chain_id: int, config: Settings = default_settings) -> ChainConfig:
    chain = config.chain_configs().get(chain_id)
    if chain is None:
        raise ConfigurationError(f"Chain ID {chain_id} not found in config")
    return chain


def get_contract_addresses(chain_id: int, config: Settings = default_settings) -> ContractAddresses:
    chain = get_chain_config(chain_id, config)
    return ContractAddresses(
        entry_point=_address(chain.entry_point_address, "entry point", required=True),
        wallet_factory=_address(chain.wallet_factory_address, "wallet factory"),
        paymaster=_address(chain.paymaster_address, "paymaster"),
    )


def validate(config: Settings = default_settings) -> Dict[int, ChainConfig]:
    log.info("--- CONFIG VALIDATION START ---")
    chains = config.chain_configs()
    if not chains:
        raise ConfigurationError("No chain configurations found in environment variables")

    errors = []
    for chain_id in chains:
        try:
            get_contract_addresses(chain_id, config)
        except ConfigurationError as e:
            errors.append(f"chain {chain_id}: {e.message}")

    if errors:
        for error in errors:
            log.critical(error)
        raise ConfigurationError("System configuration is incomplete. Halting.")

    log.info("--- CONFIG VALIDATION PASSED ---", chains=sorted(chains))
    return chains


if __name__ == "__main__":
    validate()
