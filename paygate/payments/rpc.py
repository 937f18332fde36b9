"""Minimal JSON-RPC 2.0 client for EVM nodes."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


class PaymentVerificationError(Exception):
    """Raised when payment verification fails."""
    pass


class RpcTransportError(PaymentVerificationError):
    """The RPC endpoint could not be reached or answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class RpcError(PaymentVerificationError):
    """The RPC endpoint returned a JSON-RPC error object."""

    def __init__(self, code: Any, message: str):
        super().__init__(f"RPC error ({code}): {message}")
        self.code = code
        self.rpc_message = message


def _build_payload(method: str, params: list) -> dict:
    return {
        "jsonrpc": "2.0",
        "method": method,
        "params": params,
        "id": 1,
    }


def _unwrap(response: httpx.Response) -> Any:
    if not response.is_success:
        raise RpcTransportError(
            f"RPC HTTP error: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code,
        )

    try:
        body = response.json()
    except ValueError as e:
        raise RpcTransportError(f"RPC returned invalid JSON: {e}", status_code=response.status_code) from e

    if not isinstance(body, dict):
        raise RpcTransportError("RPC returned a non-object response", status_code=response.status_code)

    error = body.get("error")
    if error:
        if isinstance(error, dict):
            raise RpcError(error.get("code"), error.get("message") or "RPC error")
        raise RpcError(None, str(error))

    return body.get("result")


async def json_rpc(
    rpc_url: str,
    method: str,
    params: list,
    client: httpx.AsyncClient | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> Any:
    """Make a JSON-RPC call to an EVM node.

    Args:
        rpc_url: Node endpoint
        method: RPC method, e.g. "eth_getTransactionByHash"
        params: Positional parameters
        client: Optional shared client; a short-lived one is used otherwise
        timeout: Request timeout in seconds (only for the short-lived client)

    Returns:
        The decoded "result" member (may be None)

    Raises:
        RpcTransportError: On connection failures, non-2xx responses or bad JSON
        RpcError: If the response carries an "error" member
    """
    payload = _build_payload(method, params)
    headers = {"Content-Type": "application/json"}

    try:
        if client is not None:
            response = await client.post(rpc_url, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                response = await own_client.post(rpc_url, json=payload, headers=headers)
    except httpx.HTTPError as e:
        raise RpcTransportError(f"RPC transport error: {e}") from e

    return _unwrap(response)


class JsonRpcClient:
    """JSON-RPC client bound to a single endpoint.

    Usable as the ``rpc`` callable of PaymentVerifier; calls to other
    endpoints are passed through with the same underlying HTTP client.
    """

    def __init__(
        self,
        rpc_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.rpc_url = rpc_url
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout

    async def __aenter__(self) -> JsonRpcClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def call(self, method: str, params: list, rpc_url: str | None = None) -> Any:
        url = rpc_url or self.rpc_url
        if not url:
            raise RpcTransportError("No RPC URL configured")
        logger.debug(f"RPC {method} -> {url}")
        return await json_rpc(url, method, params, client=self._client, timeout=self.timeout)

    async def __call__(self, rpc_url: str, method: str, params: list) -> Any:
        return await self.call(method, params, rpc_url=rpc_url)
