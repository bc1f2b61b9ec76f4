# /userop_engine/core/userop.py
# Assembles, hashes and signs user operations.
from typing import Optional, Tuple, Union

from eth_abi import encode
from eth_utils import keccak, to_bytes, to_checksum_address

from userop_engine.core.errors import InvalidUserOpError, RpcError, SignatureError, UserOpError
from userop_engine.core.gas_estimator import GasEstimator
from userop_engine.core.logger import bind_request, get_logger, record_userop_generation
from userop_engine.core.models import UserOperation
from userop_engine.core.signer import Signer

log = get_logger(__name__)

HexOrBytes = Union[bytes, str]

# Field order is part of the hash: changing it changes every signature.
USEROP_HASH_TYPES = [
    "address",  # sender
    "uint256",  # nonce
    "bytes",    # initCode
    "bytes",    # callData
    "uint256",  # callGasLimit
    "uint256",  # verificationGasLimit
    "uint256",  # preVerificationGas
    "uint256",  # maxFeePerGas
    "uint256",  # maxPriorityFeePerGas
    "bytes",    # paymasterAndData
    "uint256",  # chainId
    "address",  # entryPoint
]


def _as_bytes(value: HexOrBytes) -> bytes:
    if isinstance(value, str):
        return to_bytes(hexstr=value)
    return bytes(value)


def hash_user_op(user_op: UserOperation, entry_point: str, chain_id: int) -> bytes:
    """
    keccak256 of the ABI-encoded operation (signature excluded), chain id and entry point.

    Not the entry point's own ``getUserOpHash`` layout.
    """
    encoded = encode(USEROP_HASH_TYPES, [
        user_op.sender,
        user_op.nonce,
        user_op.init_code,
        user_op.call_data,
        user_op.call_gas_limit,
        user_op.verification_gas_limit,
        user_op.pre_verification_gas,
        user_op.max_fee_per_gas,
        user_op.max_priority_fee_per_gas,
        user_op.paymaster_and_data,
        chain_id,
        to_checksum_address(entry_point),
    ])
    return keccak(encoded)


class OperationAssembler:
    """
    Builds gas-priced user operations and signs them on request.

    ``nonce_source`` is optional; when given it must expose
    ``async get_nonce(chain_id, sender) -> int`` (see EntryPointAdapter).
    Without it, operations default to nonce 0 unless a cached or explicit
    nonce is available.
    """
    def __init__(self, gas_estimator: GasEstimator, nonce_source=None):
        self.gas_estimator = gas_estimator
        self.gas_cache = gas_estimator.gas_cache
        self.nonce_source = nonce_source

    async def resolve_nonce(self, chain_id: int, sender: str) -> int:
        nonce = await self.gas_cache.get_nonce(chain_id, sender)
        if nonce is not None:
            return nonce
        if self.nonce_source is None:
            return 0

        async def attempt():
            try:
                return await self.nonce_source.get_nonce(chain_id, sender)
            except UserOpError:
                raise
            except Exception as e:
                raise RpcError(f"getNonce failed: {e}") from e

        estimator = self.gas_estimator
        nonce = await estimator.executor.run(
            chain_id,
            attempt,
            estimator.retry_config_for(chain_id),
            method="getNonce",
        )
        await self.gas_cache.set_nonce(chain_id, sender, nonce)
        return nonce

    async def invalidate_nonce(self, chain_id: int, sender: str):
        """Forces the next build for ``sender`` to re-read its nonce, e.g. after a submission."""
        await self.gas_cache.invalidate_nonce(chain_id, sender)

    async def build(
        self,
        sender: str,
        call_data: HexOrBytes,
        chain_id: int,
        paymaster: Optional[Tuple[str, HexOrBytes]] = None,
        nonce: Optional[int] = None,
    ) -> UserOperation:
        """Returns an unsigned operation with gas fields, nonce and paymaster data filled in."""
        with bind_request(chain_id, sender):
            try:
                try:
                    user_op = UserOperation(sender=sender, call_data=_as_bytes(call_data))
                except ValueError as e:
                    raise InvalidUserOpError(str(e)) from e

                gas = await self.gas_estimator.estimate(user_op, chain_id)
                user_op.apply_gas(gas)
                user_op.nonce = nonce if nonce is not None else await self.resolve_nonce(chain_id, user_op.sender)

                if paymaster is not None:
                    paymaster_address, paymaster_data = paymaster
                    try:
                        user_op.with_paymaster(paymaster_address, _as_bytes(paymaster_data))
                    except ValueError as e:
                        raise InvalidUserOpError(f"Invalid paymaster: {e}") from e
            except UserOpError as e:
                record_userop_generation(chain_id, False)
                log.error("USEROP_GENERATION_FAILED", error=str(e), stage=type(e).__name__)
                raise

            record_userop_generation(chain_id, True)
            log.info("USEROP_GENERATED", nonce=user_op.nonce, max_fee_per_gas=user_op.max_fee_per_gas)
            return user_op

    async def sign(self, user_op: UserOperation, signer: Signer, entry_point: str, chain_id: int):
        """Hashes ``user_op`` for ``entry_point`` on ``chain_id`` and stores the signer's signature on it."""
        try:
            digest = hash_user_op(user_op, entry_point, chain_id)
        except ValueError as e:
            raise InvalidUserOpError(f"Cannot hash operation: {e}") from e

        try:
            signature = await signer.sign(digest)
        except Exception as e:
            log.error("USEROP_SIGNING_FAILED", chain_id=chain_id, error=str(e))
            raise SignatureError(str(e)) from e

        user_op.signature = bytes(signature)
        log.info("USEROP_SIGNED", chain_id=chain_id, user_op_hash="0x" + digest.hex())
