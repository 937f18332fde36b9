"""On-chain payment verification for pay-per-call APIs."""

from .amounts import AmountEncodingError, to_base_units
from .networks import (
    NETWORK_CONFIGS,
    NetworkConfig,
    PaymentConfig,
    TokenType,
    network_key_from_request,
    resolve_network_config,
    resolve_request_config,
)
from .rpc import (
    JsonRpcClient,
    PaymentVerificationError,
    RpcError,
    RpcTransportError,
    json_rpc,
)
from .verification import (
    PaymentVerifier,
    Verdict,
    VerificationCode,
    VerificationRequest,
    verify_native_transfer,
    verify_native_transfer_sync,
)

__all__ = [
    # Amounts
    "to_base_units",
    "AmountEncodingError",
    # Networks
    "NETWORK_CONFIGS",
    "NetworkConfig",
    "PaymentConfig",
    "TokenType",
    "resolve_network_config",
    "resolve_request_config",
    "network_key_from_request",
    # RPC
    "json_rpc",
    "JsonRpcClient",
    "PaymentVerificationError",
    "RpcError",
    "RpcTransportError",
    # Verification
    "PaymentVerifier",
    "Verdict",
    "VerificationCode",
    "VerificationRequest",
    "verify_native_transfer",
    "verify_native_transfer_sync",
]
