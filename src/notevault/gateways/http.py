"""Async HTTP TransferGateway for a custodian's transfer API."""

from __future__ import annotations

from typing import Any

import httpx

from notevault.transfer_gateway import (
    GatewayUnavailable,
    InsufficientFunds,
    TransferError,
    TransferRejected,
)


# ---------------------------------------------------------------------------
# Status code → exception mapping
# ---------------------------------------------------------------------------

_STATUS_MAP: dict[int, type[TransferError]] = {
    401: TransferRejected,
    402: InsufficientFunds,
    403: TransferRejected,
    409: InsufficientFunds,
    422: TransferRejected,
}


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class HttpTransferGateway:
    """Async client posting transfers to ``{host}/api/v1/transfers``.

    Constructor accepts explicit params — no env-var loading. The custodian
    is expected to apply each request atomically and answer 2xx only once
    the balances have moved.
    """

    def __init__(self, host: str, api_key: str, asset: str | None = None) -> None:
        base_url = host.rstrip("/") + "/api/v1"
        self._asset = asset
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=httpx.Timeout(connect=5.0, read=15.0, write=10.0, pool=5.0),
        )

    # -- internal request dispatcher -----------------------------------------

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and map errors to the TransferError hierarchy."""
        try:
            response = await self._client.request(method, endpoint, json=json_data)
        except httpx.ConnectError as exc:
            raise GatewayUnavailable(str(exc)) from exc
        except httpx.TimeoutException as exc:
            raise GatewayUnavailable(str(exc)) from exc

        if response.status_code >= 400:
            body = response.text
            exc_cls = _STATUS_MAP.get(response.status_code)
            if exc_cls is not None:
                raise exc_cls(body, status_code=response.status_code)
            if response.status_code >= 500:
                raise GatewayUnavailable(body, status_code=response.status_code)
            raise TransferError(body, status_code=response.status_code)

        if not response.content:
            return {}
        return response.json()

    # -- public API methods ---------------------------------------------------

    async def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """POST /transfers — move ``amount`` from ``sender`` to ``recipient``."""
        payload: dict[str, Any] = {
            "from": sender,
            "to": recipient,
            "amount": str(amount),
        }
        if self._asset is not None:
            payload["asset"] = self._asset
        await self._request("POST", "/transfers", json_data=payload)

    async def balance_of(self, principal: str) -> int:
        """GET /balances/{principal} — current balance of ``principal``."""
        data = await self._request("GET", f"/balances/{principal}")
        return int(data.get("amount", 0))

    # -- lifecycle ------------------------------------------------------------

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> HttpTransferGateway:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()
