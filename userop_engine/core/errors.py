# /userop_engine/core/errors.py
# Error taxonomy for the user operation pipeline. Rate-limit denial is not an
# error: the retry executor treats it as a backoff signal.


class UserOpError(Exception):
    """Base class for every failure raised by the pipeline."""
    prefix = "UserOp error"

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(f"{self.prefix}: {message}" if message else self.prefix)


class ConfigurationError(UserOpError):
    prefix = "Chain configuration error"


class UnsupportedChainError(UserOpError):
    prefix = "Chain not supported"

    def __init__(self, chain_id):
        self.chain_id = chain_id
        super().__init__(str(chain_id))


class GasEstimationError(UserOpError):
    prefix = "Gas estimation error"


class RpcError(UserOpError):
    prefix = "RPC error"


class SignatureError(UserOpError):
    prefix = "Signature error"


class InvalidUserOpError(UserOpError):
    prefix = "Invalid UserOp"


class RetryExhaustedError(RpcError):
    """Raised when the overall retry time budget runs out before the attempts do."""
    prefix = "Retry limit exceeded"
