# /userop_engine/core/signer.py
from typing import Protocol

from eth_account import Account
from eth_account.messages import encode_defunct

from userop_engine.core.config import Settings, settings as default_settings
from userop_engine.core.errors import ConfigurationError
from userop_engine.core.logger import get_logger

log = get_logger(__name__)


class Signer(Protocol):
    """Anything that can turn a 32-byte operation hash into signature bytes."""
    async def sign(self, digest: bytes) -> bytes: ...


class LocalAccountSigner:
    """Signs operation hashes as EIP-191 personal messages with an in-process key."""
    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)
        self.address = self._account.address

    async def sign(self, digest: bytes) -> bytes:
        signed = self._account.sign_message(encode_defunct(primitive=digest))
        return bytes(signed.signature)


def get_signer(config: Settings = default_settings) -> LocalAccountSigner:
    if config.PRIVATE_KEY is None:
        raise ConfigurationError("PRIVATE_KEY is not set")
    try:
        signer = LocalAccountSigner(config.PRIVATE_KEY.get_secret_value())
    except ValueError as e:
        raise ConfigurationError(f"Invalid private key: {e}") from e
    log.info("SIGNER_LOADED", address=signer.address)
    return signer
