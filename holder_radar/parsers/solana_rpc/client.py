"""Solana JSON-RPC client: the three account queries the snapshot needs."""

import base64
import binascii
from typing import Any

import httpx
from loguru import logger

from holder_radar.parsers.exceptions import ChainUnavailableError
from holder_radar.parsers.rate_limiter import RateLimiter
from holder_radar.parsers.solana_rpc.models import RpcAccount


class SolanaRpcClient:
    """Async HTTP client for a Solana RPC endpoint (Helius or public).

    Every request acquires the shared rate limiter first. Transport
    failures, timeouts, HTTP 429/5xx and JSON-RPC errors all surface as
    ChainUnavailableError; retrying is left to the next scheduler tick.
    """

    def __init__(
        self,
        rpc_url: str,
        rate_limiter: RateLimiter,
        *,
        timeout: float = 60.0,
        commitment: str = "confirmed",
    ) -> None:
        self._rpc_url = rpc_url
        self._rate_limiter = rate_limiter
        self._commitment = commitment
        self._client = httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    async def close(self) -> None:
        await self._client.aclose()

    async def get_account_info(self, pubkey: str) -> RpcAccount | None:
        """Fetch one account (base64). Returns None if it does not exist."""
        result = await self._call(
            "getAccountInfo",
            [pubkey, {"encoding": "base64", "commitment": self._commitment}],
        )
        value = (result or {}).get("value")
        if not value:
            return None
        return _parse_account(value, pubkey=pubkey)

    async def get_program_accounts(
        self,
        program_id: str,
        *,
        mint: str,
        data_size: int | None = None,
    ) -> list[RpcAccount]:
        """All accounts of ``program_id`` whose first 32 bytes equal ``mint``.

        Entries whose data cannot be decoded are dropped.
        """
        filters: list[dict[str, Any]] = [{"memcmp": {"offset": 0, "bytes": mint}}]
        if data_size is not None:
            filters.append({"dataSize": data_size})

        result = await self._call(
            "getProgramAccounts",
            [
                program_id,
                {
                    "encoding": "base64",
                    "commitment": self._commitment,
                    "filters": filters,
                },
            ],
        )
        accounts: list[RpcAccount] = []
        for entry in result or []:
            account = _parse_account(entry.get("account") or {}, pubkey=entry.get("pubkey", ""))
            if account is not None:
                accounts.append(account)
        logger.debug(f"[RPC] getProgramAccounts {mint[:12]}: {len(accounts)} accounts")
        return accounts

    async def get_multiple_accounts(self, pubkeys: list[str]) -> list[RpcAccount | None]:
        """Batch account lookup. Result is positional; absent accounts are None."""
        if not pubkeys:
            return []
        result = await self._call(
            "getMultipleAccounts",
            [pubkeys, {"encoding": "base64", "commitment": self._commitment}],
        )
        values = (result or {}).get("value") or []
        accounts: list[RpcAccount | None] = []
        for pubkey, value in zip(pubkeys, values):
            accounts.append(_parse_account(value, pubkey=pubkey) if value else None)
        # Short responses leave trailing addresses unknown
        accounts.extend([None] * (len(pubkeys) - len(accounts)))
        return accounts

    async def _call(self, method: str, params: list[Any]) -> Any:
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params,
        }

        await self._rate_limiter.acquire()
        try:
            resp = await self._client.post(self._rpc_url, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"[RPC] {method} transport error: {type(e).__name__}: {e}")
            raise ChainUnavailableError(f"{method}: {type(e).__name__}") from e

        if resp.status_code == 429:
            logger.warning(f"[RPC] {method} rate limited by provider")
            raise ChainUnavailableError(f"{method}: HTTP 429")
        if resp.status_code != 200:
            logger.warning(f"[RPC] {method} HTTP {resp.status_code}")
            raise ChainUnavailableError(f"{method}: HTTP {resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise ChainUnavailableError(f"{method}: invalid JSON response") from e

        if "error" in data:
            logger.warning(f"[RPC] {method} RPC error: {data['error']}")
            raise ChainUnavailableError(f"{method}: {data['error']}")

        return data.get("result")


def _parse_account(value: dict, *, pubkey: str = "") -> RpcAccount | None:
    """Parse a raw RPC account object with base64 data."""
    raw_data = value.get("data")
    owner = value.get("owner")
    if not owner or not isinstance(raw_data, list) or not raw_data:
        logger.debug(f"[RPC] Skipping malformed account {pubkey[:12]}")
        return None
    try:
        data = base64.b64decode(raw_data[0], validate=True)
    except (binascii.Error, ValueError, TypeError):
        logger.debug(f"[RPC] Undecodable data for {pubkey[:12]}")
        return None

    return RpcAccount(
        pubkey=pubkey,
        owner=owner,
        lamports=value.get("lamports", 0),
        data=data,
        executable=value.get("executable", False),
    )
