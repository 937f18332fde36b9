"""Native-token payment verification on EVM chains (Pharos testnet, etc).

Verifies that a native transfer actually occurred on-chain by:
1. Polling eth_getTransactionByHash until the node has indexed the tx
2. Fetching the receipt and checking the execution status
3. Validating recipient, sender and amount against the invoice

Every outcome is returned as a Verdict; verify() never raises.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from functools import partial
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from .amounts import AmountEncodingError, to_base_units
from .networks import PaymentConfig
from .rpc import json_rpc

if TYPE_CHECKING:
    from paygate.config import Settings

logger = logging.getLogger(__name__)

MAX_POLL_ATTEMPTS = 20
POLL_INTERVAL = 2.0  # seconds

RECEIPT_STATUS_SUCCESS = "0x1"

RpcCall = Callable[[str, str, list], Awaitable[Any]]
Sleep = Callable[[float], Awaitable[Any]]


class VerificationCode(str, Enum):
    """Outcome of a verification call. Everything but ``ok`` is a rejection."""

    ok = "ok"
    missing_tx_hash = "missing_tx_hash"
    missing_recipient = "missing_recipient"
    tx_not_found = "tx_not_found"
    receipt_not_found = "receipt_not_found"
    tx_failed = "tx_failed"
    wrong_recipient = "wrong_recipient"
    wallet_mismatch = "wallet_mismatch"
    amount_encode_error = "amount_encode_error"
    amount_too_low = "amount_too_low"
    verification_error = "verification_error"


@dataclass(frozen=True)
class Verdict:
    """Result of verifying a native transfer.

    Build instances with ``Verdict.success`` / ``Verdict.failure``.
    """

    ok: bool
    code: VerificationCode
    message: str
    explorer_url: str

    # Expected vs. actual values for business-rule rejections
    details: Optional[Mapping[str, str]] = None

    # Populated if ok=True
    payer: Optional[str] = None
    amount_raw: Optional[str] = None  # Base units as a decimal string
    network: Optional[str] = None

    @classmethod
    def failure(
        cls,
        code: VerificationCode,
        message: str,
        explorer_url: str,
        details: Optional[Mapping[str, str]] = None,
    ) -> Verdict:
        if code is VerificationCode.ok:
            raise ValueError("failure verdict cannot carry the ok code")
        return cls(
            ok=False,
            code=code,
            message=message,
            explorer_url=explorer_url,
            details=MappingProxyType(dict(details)) if details is not None else None,
        )

    @classmethod
    def success(cls, payer: str, amount_raw: int, network: str, explorer_url: str) -> Verdict:
        return cls(
            ok=True,
            code=VerificationCode.ok,
            message=f"Payment verified on {network}",
            explorer_url=explorer_url,
            payer=payer,
            amount_raw=str(amount_raw),
            network=network,
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        data: dict[str, Any] = {
            "ok": self.ok,
            "code": self.code.value,
            "message": self.message,
            "explorerUrl": self.explorer_url,
        }
        if self.details is not None:
            data["details"] = dict(self.details)
        if self.payer is not None:
            data["payer"] = self.payer
        if self.amount_raw is not None:
            data["amountRaw"] = self.amount_raw
        if self.network is not None:
            data["network"] = self.network
        return data


class VerificationRequest(BaseModel):
    """A caller's claim that an invoice has been paid.

    Legacy callers pass the hash as ``signature`` and may still send
    ``mint`` / ``memo``; those extra fields are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    tx_hash: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("tx_hash", "txHash", "signature")
    )
    amount: Union[str, int, Decimal, None] = None
    recipient: Optional[str] = None
    decimals: Optional[int] = None
    expected_wallet: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("expected_wallet", "expectedWallet")
    )
    network_config: Optional[PaymentConfig] = Field(
        default=None, validation_alias=AliasChoices("network_config", "networkConfig")
    )


def _normalize_address(address: Optional[str]) -> str:
    """Normalize an address for comparison (lower-case, empty if missing)."""
    if not address:
        return ""
    return address.lower()


def _parse_quantity(value: Optional[str]) -> int:
    """Parse a hex-encoded unsigned quantity such as a tx value."""
    quantity = int(value or "0x0", 16)
    if quantity < 0:
        raise ValueError(f"Negative on-chain quantity: {value}")
    return quantity


class PaymentVerifier:
    """Runs the ordered verification pipeline against an RPC endpoint.

    Both the RPC call and the sleep between polling attempts are injectable,
    so tests can drive the pipeline with a fake node and a virtual clock.
    """

    def __init__(
        self,
        config: Optional[PaymentConfig] = None,
        rpc: Optional[RpcCall] = None,
        sleep: Optional[Sleep] = None,
        max_attempts: int = MAX_POLL_ATTEMPTS,
        poll_interval: float = POLL_INTERVAL,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._config = config
        self._rpc = rpc or json_rpc
        self._sleep = sleep or asyncio.sleep
        self.max_attempts = max_attempts
        self.poll_interval = poll_interval

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        rpc: Optional[RpcCall] = None,
        sleep: Optional[Sleep] = None,
    ) -> PaymentVerifier:
        """Build a verifier using process settings for defaults and polling."""
        if settings is None:
            from paygate.config import get_settings

            settings = get_settings()
        return cls(
            config=settings.payment_defaults(),
            rpc=rpc or partial(json_rpc, timeout=settings.rpc_timeout),
            sleep=sleep,
            max_attempts=settings.poll_attempts,
            poll_interval=settings.poll_interval,
        )

    @property
    def config(self) -> PaymentConfig:
        if self._config is None:
            from paygate.config import get_settings

            self._config = get_settings().payment_defaults()
        return self._config

    def effective_config(self, request: VerificationRequest) -> PaymentConfig:
        """Overlay the fields the request's network config actually sets."""
        if request.network_config is None:
            return self.config
        overrides = {
            name: getattr(request.network_config, name)
            for name in request.network_config.model_fields_set
        }
        return self.config.model_copy(update=overrides)

    async def verify(self, request: VerificationRequest) -> Verdict:
        """Verify a native transfer against an invoice.

        Returns:
            Verdict with ok=True and payer/amount/network if all checks pass,
            otherwise ok=False with the code of the first failing check
        """
        config = self.effective_config(request)
        tx_hash = request.tx_hash
        explorer_url = config.explorer_url(tx_hash)

        if not tx_hash:
            return Verdict.failure(
                VerificationCode.missing_tx_hash,
                "Missing transaction hash",
                explorer_url,
            )

        expected_recipient = _normalize_address(request.recipient or config.recipient)
        if not expected_recipient:
            return Verdict.failure(
                VerificationCode.missing_recipient,
                "No recipient configured for payments",
                explorer_url,
            )

        decimals = request.decimals if request.decimals is not None else config.decimals

        try:
            return await self._verify_on_chain(
                config=config,
                tx_hash=tx_hash,
                amount=request.amount,
                decimals=decimals,
                expected_recipient=expected_recipient,
                expected_wallet=request.expected_wallet,
                explorer_url=explorer_url,
            )
        except Exception as e:
            logger.exception(f"Unexpected error verifying payment {tx_hash}")
            return Verdict.failure(
                VerificationCode.verification_error,
                str(e) or "Unknown verification error",
                explorer_url,
            )

    async def poll_transaction(self, rpc_url: str, tx_hash: str) -> Optional[dict]:
        """Poll for a transaction until the node returns it or attempts run out.

        Transport errors and null results both count as "not found yet".
        """
        logger.info(
            f"Waiting for transaction {tx_hash} (max {self.max_attempts} attempts)"
        )
        for attempt in range(1, self.max_attempts + 1):
            try:
                tx = await self._rpc(rpc_url, "eth_getTransactionByHash", [tx_hash])
                if tx is not None:
                    logger.info(f"Transaction {tx_hash} found after {attempt} attempt(s)")
                    return tx
            except Exception as e:
                logger.warning(f"Attempt {attempt}/{self.max_attempts} failed for {tx_hash}: {e}")

            if attempt < self.max_attempts:
                logger.debug(
                    f"Transaction {tx_hash} not found yet, retrying in {self.poll_interval}s"
                )
                await self._sleep(self.poll_interval)

        logger.error(f"Transaction {tx_hash} not found after {self.max_attempts} attempts")
        return None

    async def _verify_on_chain(
        self,
        config: PaymentConfig,
        tx_hash: str,
        amount: Any,
        decimals: int,
        expected_recipient: str,
        expected_wallet: Optional[str],
        explorer_url: str,
    ) -> Verdict:
        tx = await self.poll_transaction(config.rpc_url, tx_hash)
        if tx is None:
            return Verdict.failure(
                VerificationCode.tx_not_found,
                "Transaction not found on chain after polling",
                explorer_url,
            )

        receipt = await self._rpc(config.rpc_url, "eth_getTransactionReceipt", [tx_hash])
        if receipt is None:
            return Verdict.failure(
                VerificationCode.receipt_not_found,
                "Transaction receipt not found on chain",
                explorer_url,
            )

        if receipt.get("status") != RECEIPT_STATUS_SUCCESS:
            return Verdict.failure(
                VerificationCode.tx_failed,
                "Transaction status is not successful",
                explorer_url,
            )

        payer = _normalize_address(tx.get("from"))
        to_address = _normalize_address(tx.get("to"))

        if to_address != expected_recipient:
            return Verdict.failure(
                VerificationCode.wrong_recipient,
                "Payment was sent to a different address",
                explorer_url,
                details={
                    "expectedRecipient": expected_recipient,
                    "actualRecipient": to_address,
                },
            )

        if expected_wallet:
            expected_payer = _normalize_address(expected_wallet)
            if payer != expected_payer:
                return Verdict.failure(
                    VerificationCode.wallet_mismatch,
                    "Payment was sent from a different wallet than expected",
                    explorer_url,
                    details={"expectedWallet": expected_payer, "actualWallet": payer},
                )

        # value is a hex quantity in base units (wei)
        chain_amount = _parse_quantity(tx.get("value"))

        try:
            expected_amount = to_base_units(amount, decimals)
        except AmountEncodingError as e:
            return Verdict.failure(
                VerificationCode.amount_encode_error,
                f"Failed to encode expected amount: {e}",
                explorer_url,
            )

        if chain_amount < expected_amount:
            return Verdict.failure(
                VerificationCode.amount_too_low,
                "On-chain amount is below invoice requirement",
                explorer_url,
                details={"expected": str(expected_amount), "actual": str(chain_amount)},
            )

        return Verdict.success(
            payer=payer,
            amount_raw=chain_amount,
            network=config.network,
            explorer_url=explorer_url,
        )


async def verify_native_transfer(
    tx_hash: Optional[str],
    amount: Any,
    recipient: Optional[str] = None,
    decimals: Optional[int] = None,
    expected_wallet: Optional[str] = None,
    network_config: Union[PaymentConfig, Mapping[str, Any], None] = None,
    verifier: Optional[PaymentVerifier] = None,
) -> Verdict:
    """Verify a native transfer on-chain.

    Args:
        tx_hash: Transaction hash to verify
        amount: Invoice amount, human-readable (e.g. "0.01")
        recipient: Expected recipient (defaults to the configured recipient)
        decimals: Token precision (defaults to the network's)
        expected_wallet: Expected sender address, if the invoice names one
        network_config: Per-request PaymentConfig (or a partial mapping of one)
        verifier: Verifier to use (defaults to one built from settings)

    Returns:
        Verdict; never raises
    """
    verifier = verifier or PaymentVerifier.from_settings()
    try:
        request = VerificationRequest(
            tx_hash=tx_hash,
            amount=amount,
            recipient=recipient,
            decimals=decimals,
            expected_wallet=expected_wallet,
            network_config=network_config,
        )
    except ValidationError as e:
        logger.error(f"Invalid verification request for {tx_hash}: {e}")
        base = verifier.config
        if isinstance(network_config, PaymentConfig):
            base = network_config
        return Verdict.failure(
            VerificationCode.verification_error,
            f"Invalid verification request: {e.error_count()} validation error(s)",
            base.explorer_url(tx_hash),
        )
    return await verifier.verify(request)


# Synchronous wrapper for non-async contexts
def verify_native_transfer_sync(
    tx_hash: Optional[str],
    amount: Any,
    recipient: Optional[str] = None,
    decimals: Optional[int] = None,
    expected_wallet: Optional[str] = None,
    network_config: Union[PaymentConfig, Mapping[str, Any], None] = None,
    verifier: Optional[PaymentVerifier] = None,
) -> Verdict:
    """Synchronous wrapper for verify_native_transfer."""
    return asyncio.run(verify_native_transfer(
        tx_hash=tx_hash,
        amount=amount,
        recipient=recipient,
        decimals=decimals,
        expected_wallet=expected_wallet,
        network_config=network_config,
        verifier=verifier,
    ))
