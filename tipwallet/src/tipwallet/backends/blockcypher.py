"""
BlockCypher REST API backend.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from tipwallet.backends.base import LedgerBackend
from tipwallet.errors import BackendError
from tipwallet.models import UnspentOutput, UnspentOutputs

MAINNET_API_URL = "https://api.blockcypher.com/v1/btc/main"
TESTNET_API_URL = "https://api.blockcypher.com/v1/btc/test3"

# BlockCypher caps address queries at 2000 txrefs
MAX_UNSPENT_LIMIT = 2000


class BlockCypherBackend(LedgerBackend):
    """
    Ledger backend using the BlockCypher address and push endpoints.

    No timeout is applied unless one is given; failed requests are not retried.
    """

    def __init__(
        self,
        base_url: str = MAINNET_API_URL,
        token: str | None = None,
        unspent_limit: int = 50,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.unspent_limit = min(unspent_limit, MAX_UNSPENT_LIMIT)
        self.client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    def _params(self, **params: Any) -> dict[str, Any]:
        if self.token:
            params["token"] = self.token
        return params

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """
        Make a request and return the decoded JSON body.

        Raises:
            BackendError: On connection errors, error statuses and invalid JSON
        """
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"BlockCypher request failed: {method} {path} - {e}")
            raise BackendError(f"Request to {path} failed: {e}") from e

        if response.is_error:
            detail = _error_detail(response)
            logger.error(f"BlockCypher returned {response.status_code} for {path}: {detail}")
            raise BackendError(detail)

        try:
            return response.json()
        except ValueError as e:
            raise BackendError(f"Invalid JSON from {path}") from e

    async def get_unspent_outputs(self, address: str) -> UnspentOutputs:
        data = await self._request(
            "GET",
            f"/addrs/{address}",
            params=self._params(
                unspentOnly="true", includeScript="true", limit=self.unspent_limit
            ),
        )

        result = UnspentOutputs(
            unconfirmed=[_parse_txref(ref) for ref in data.get("unconfirmed_txrefs") or []],
            confirmed=[_parse_txref(ref) for ref in data.get("txrefs") or []],
        )
        logger.debug(
            f"Fetched {len(result.unconfirmed)} unconfirmed and "
            f"{len(result.confirmed)} confirmed unspent outputs"
        )
        return result

    async def get_address_balance(self, address: str) -> int:
        data = await self._request(
            "GET", f"/addrs/{address}/balance", params=self._params()
        )
        try:
            return int(data["balance"])
        except (KeyError, TypeError, ValueError) as e:
            raise BackendError("Balance missing from response") from e

    async def broadcast_transaction(self, tx_hex: str) -> str:
        data = await self._request(
            "POST", "/txs/push", params=self._params(), json={"tx": tx_hex}
        )
        try:
            txid = data["tx"]["hash"]
        except (KeyError, TypeError) as e:
            raise BackendError("Transaction hash missing from push response") from e
        logger.info(f"Broadcast transaction {txid}")
        return txid

    async def close(self) -> None:
        await self.client.aclose()


def _parse_txref(ref: dict[str, Any]) -> UnspentOutput:
    try:
        return UnspentOutput(
            tx_hash=ref["tx_hash"],
            output_index=int(ref["tx_output_n"]),
            value=int(ref["value"]),
            script=ref.get("script", ""),
            confirmations=int(ref.get("confirmations", 0)),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise BackendError(f"Malformed unspent output: {ref}") from e


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}: {response.text[:200]}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"
