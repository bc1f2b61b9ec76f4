# /userop_engine/core/config.py
from typing import Dict, Optional

from pydantic import BaseModel, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ENTRY_POINT = "0x5FF137D4b0FDCD49DcA30c7CF57E578a026d2789"

ETHEREUM_CHAIN_ID = 1
POLYGON_CHAIN_ID = 137
ARBITRUM_CHAIN_ID = 42161


class ChainConfig(BaseModel):
    """Endpoint and contract addresses for a single chain."""
    chain_id: int
    rpc_url: str
    entry_point_address: str
    wallet_factory_address: Optional[str] = None
    paymaster_address: Optional[str] = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # RPC endpoints
    ETH_PROVIDER_URL: str | None = None
    POLYGON_PROVIDER_URL: str | None = None
    ARBITRUM_PROVIDER_URL: str | None = None

    # Contracts
    ENTRY_POINT_ADDRESS: str = DEFAULT_ENTRY_POINT
    ETH_WALLET_FACTORY: str | None = None
    ETH_PAYMASTER: str | None = None
    POLYGON_WALLET_FACTORY: str | None = None
    POLYGON_PAYMASTER: str | None = None
    ARBITRUM_WALLET_FACTORY: str | None = None
    ARBITRUM_PAYMASTER: str | None = None

    # Keys
    PRIVATE_KEY: SecretStr | None = None

    # Operational Settings
    LOG_LEVEL: str = "INFO"
    HEALTH_PORT: int = 9000
    SENTRY_DSN: str | None = None

    def chain_configs(self) -> Dict[int, ChainConfig]:
        """Builds a ChainConfig for every chain whose RPC URL is set."""
        sources = (
            (ETHEREUM_CHAIN_ID, self.ETH_PROVIDER_URL, self.ETH_WALLET_FACTORY, self.ETH_PAYMASTER),
            (POLYGON_CHAIN_ID, self.POLYGON_PROVIDER_URL, self.POLYGON_WALLET_FACTORY, self.POLYGON_PAYMASTER),
            (ARBITRUM_CHAIN_ID, self.ARBITRUM_PROVIDER_URL, self.ARBITRUM_WALLET_FACTORY, self.ARBITRUM_PAYMASTER),
        )
        chains = {}
        for chain_id, rpc_url, factory, paymaster in sources:
            if not rpc_url:
                continue
            chains[chain_id] = ChainConfig(
                chain_id=chain_id,
                rpc_url=rpc_url,
                entry_point_address=self.ENTRY_POINT_ADDRESS,
                wallet_factory_address=factory,
                paymaster_address=paymaster,
            )
        return chains


try:
    settings = Settings()
except Exception as e:
    # Late import to avoid circular dependency only for logging the failure
    try:
        from userop_engine.core.logger import get_logger, configure_logging
        configure_logging()
        log = get_logger("UserOpEngine.Config")
        log.critical("FAILED_TO_LOAD_SETTINGS", error=str(e))
    except Exception:
        print("FAILED_TO_LOAD_SETTINGS", e)
    # In a container, a hard exit is often appropriate if config fails.
    raise SystemExit(1)
