"""Per-network payment configuration.

Resolves the effective PaymentConfig for a request by overlaying an entry of
the static NETWORK_CONFIGS table onto the process-wide payment defaults.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .amounts import DEFAULT_DECIMALS

if TYPE_CHECKING:
    from paygate.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "pharos-testnet"
DEFAULT_RPC_URL = "https://api.zan.top/node/v1/pharos/testnet/35905838255149eaa94c610c79294f0f"
DEFAULT_EXPLORER_BASE_URL = "https://pharos-testnet.socialscan.io/tx"

NETWORK_HEADER = "x-pharos-network"


class TokenType(str, Enum):
    """Payment token semantics supported per network."""

    native = "native"


class NetworkConfig(BaseModel):
    """Static description of one payment network."""

    model_config = ConfigDict(frozen=True)

    network: str
    rpc_url: str
    explorer_base_url: str
    decimals: int = Field(default=DEFAULT_DECIMALS, ge=0)
    token_type: TokenType = TokenType.native


class PaymentConfig(BaseModel):
    """Effective payment configuration for a single request."""

    # Legacy callers send camelCase keys (rpcUrl, explorerBaseUrl, ...)
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    network: str = DEFAULT_NETWORK
    rpc_url: str = DEFAULT_RPC_URL
    explorer_base_url: str = DEFAULT_EXPLORER_BASE_URL
    recipient: str = ""
    decimals: int = Field(default=DEFAULT_DECIMALS, ge=0)
    token_type: TokenType = TokenType.native
    expires_in_seconds: int = 300
    payment_url: str | None = None

    def explorer_url(self, tx_hash: str | None) -> str:
        """Human-checkable link for a transaction."""
        return f"{self.explorer_base_url}/{tx_hash or ''}"


# Static network table, read-only after import
NETWORK_CONFIGS: dict[str, NetworkConfig] = {
    "pharos-testnet": NetworkConfig(
        network="pharos-testnet",
        rpc_url=DEFAULT_RPC_URL,
        explorer_base_url=DEFAULT_EXPLORER_BASE_URL,
        decimals=18,
        token_type=TokenType.native,
    ),
}

# Last resort when neither the requested nor the default network is known
_FALLBACK_NETWORK = NetworkConfig(
    network=DEFAULT_NETWORK,
    rpc_url=DEFAULT_RPC_URL,
    explorer_base_url=DEFAULT_EXPLORER_BASE_URL,
    decimals=DEFAULT_DECIMALS,
    token_type=TokenType.native,
)


def _lookup(
    network_key: str | None,
    default_network: str,
    networks: Mapping[str, NetworkConfig],
) -> NetworkConfig:
    if network_key and network_key in networks:
        return networks[network_key]
    if network_key:
        logger.debug(f"Unknown network {network_key!r}, using {default_network!r}")
    if default_network in networks:
        return networks[default_network]
    return _FALLBACK_NETWORK


def build_payment_defaults(
    network: str = DEFAULT_NETWORK,
    recipient: str = "",
    expires_in_seconds: int = 300,
    payment_url: str | None = None,
    rpc_url: str | None = None,
    explorer_base_url: str | None = None,
    decimals: int | None = None,
    networks: Mapping[str, NetworkConfig] = NETWORK_CONFIGS,
) -> PaymentConfig:
    """Build the process-wide default PaymentConfig.

    Explicit rpc_url / explorer_base_url / decimals win over the default
    network's table entry, which wins over the hard-coded literals.
    """
    entry = networks.get(network, _FALLBACK_NETWORK)
    return PaymentConfig(
        network=network,
        rpc_url=rpc_url or entry.rpc_url,
        explorer_base_url=explorer_base_url or entry.explorer_base_url,
        recipient=recipient,
        decimals=decimals if decimals is not None else entry.decimals,
        token_type=entry.token_type,
        expires_in_seconds=expires_in_seconds,
        payment_url=payment_url,
    )


def resolve_network_config(
    network_key: str | None = None,
    settings: Settings | None = None,
    networks: Mapping[str, NetworkConfig] = NETWORK_CONFIGS,
) -> PaymentConfig:
    """Resolve the payment configuration for a request.

    Args:
        network_key: Network identifier from the request, if any
        settings: Process settings (defaults to the cached environment settings)
        networks: Network table to resolve against

    Returns:
        PaymentConfig with network identity, RPC URL, explorer URL, decimals
        and token type from the resolved network, and recipient, expiry and
        payment URL from the process defaults. Never fails.
    """
    if settings is None:
        from paygate.config import get_settings

        settings = get_settings()

    defaults = settings.payment_defaults()
    entry = _lookup(network_key, settings.network, networks)

    return defaults.model_copy(
        update={
            "network": entry.network,
            "rpc_url": entry.rpc_url,
            "explorer_base_url": entry.explorer_base_url,
            "decimals": entry.decimals,
            "token_type": entry.token_type,
        }
    )


def network_key_from_request(
    headers: Mapping[str, str] | None = None,
    body: Mapping[str, Any] | None = None,
) -> str | None:
    """Pick the requested network key: header first, then body field."""
    if headers:
        for name, value in headers.items():
            if name.lower() == NETWORK_HEADER and value:
                return value
    if body:
        value = body.get("network")
        if isinstance(value, str) and value:
            return value
    return None


def resolve_request_config(
    headers: Mapping[str, str] | None = None,
    body: Mapping[str, Any] | None = None,
    settings: Settings | None = None,
) -> PaymentConfig:
    """Resolve the payment configuration straight from request headers/body."""
    return resolve_network_config(network_key_from_request(headers, body), settings=settings)
