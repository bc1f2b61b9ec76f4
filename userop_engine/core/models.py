# /userop_engine/core/models.py
from typing import Any, Dict

from eth_utils import to_canonical_address, to_checksum_address
from pydantic import BaseModel, ConfigDict, field_validator


class GasParams(BaseModel):
    """Gas limits and fee caps for one operation. Computed per request, never persisted."""
    model_config = ConfigDict(frozen=True)

    call_gas_limit: int
    verification_gas_limit: int
    pre_verification_gas: int
    max_fee_per_gas: int
    max_priority_fee_per_gas: int


class UserOperation(BaseModel):
    """
    An ERC-4337 user operation.

    Mutable while it is being assembled. Once ``signature`` is set the
    operation should be treated as final; nothing enforces this.
    """
    sender: str
    nonce: int = 0
    init_code: bytes = b""
    call_data: bytes = b""
    call_gas_limit: int = 0
    verification_gas_limit: int = 0
    pre_verification_gas: int = 0
    max_fee_per_gas: int = 0
    max_priority_fee_per_gas: int = 0
    paymaster_and_data: bytes = b""
    signature: bytes = b""

    @field_validator("sender")
    @classmethod
    def _checksum_sender(cls, value: str) -> str:
        return to_checksum_address(value)

    def apply_gas(self, gas: GasParams) -> "UserOperation":
        self.call_gas_limit = gas.call_gas_limit
        self.verification_gas_limit = gas.verification_gas_limit
        self.pre_verification_gas = gas.pre_verification_gas
        self.max_fee_per_gas = gas.max_fee_per_gas
        self.max_priority_fee_per_gas = gas.max_priority_fee_per_gas
        return self

    def with_paymaster(self, paymaster: str, paymaster_data: bytes) -> "UserOperation":
        # Raw concatenation, no length prefix: the paymaster reads its address from the first 20 bytes.
        self.paymaster_and_data = to_canonical_address(paymaster) + bytes(paymaster_data)
        return self

    def to_rpc_dict(self) -> Dict[str, Any]:
        """Camel-cased, hex-encoded form used by bundler JSON-RPC methods."""
        return {
            "sender": self.sender,
            "nonce": hex(self.nonce),
            "initCode": "0x" + self.init_code.hex(),
            "callData": "0x" + self.call_data.hex(),
            "callGasLimit": hex(self.call_gas_limit),
            "verificationGasLimit": hex(self.verification_gas_limit),
            "preVerificationGas": hex(self.pre_verification_gas),
            "maxFeePerGas": hex(self.max_fee_per_gas),
            "maxPriorityFeePerGas": hex(self.max_priority_fee_per_gas),
            "paymasterAndData": "0x" + self.paymaster_and_data.hex(),
            "signature": "0x" + self.signature.hex(),
        }
