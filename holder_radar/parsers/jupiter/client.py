"""Jupiter Price API v3 client: USD quotes for snapshot market cap.

Free tier is 1 RPS, so quotes are kept for a short TTL: a stats cycle and an
on-demand snapshot of the same mint a few seconds apart share one request.
"""

import asyncio
import time
from decimal import Decimal, InvalidOperation

import httpx
from loguru import logger

from holder_radar.parsers.exceptions import PriceUnavailableError
from holder_radar.parsers.jupiter.models import JupiterPrice
from holder_radar.parsers.rate_limiter import RateLimiter

# Keyless requests go to the lite gateway; a portal key unlocks api.jup.ag
LITE_URL = "https://lite-api.jup.ag/price/v3"
PRO_URL = "https://api.jup.ag/price/v3"
MAX_RETRIES = 2
RETRY_DELAYS = [1.0, 3.0]


class JupiterClient:
    def __init__(
        self,
        api_key: str = "",
        max_rps: float = 1.0,
        *,
        quote_ttl_sec: float = 30.0,
    ) -> None:
        self._rate_limiter = RateLimiter(max_rps)
        self._quote_ttl_sec = quote_ttl_sec
        self._quotes: dict[str, tuple[float, JupiterPrice]] = {}
        self._url = PRO_URL if api_key else LITE_URL
        headers: dict[str, str] = {}
        if api_key:
            headers["x-api-key"] = api_key
        self._client = httpx.AsyncClient(timeout=10.0, headers=headers)

    async def close(self) -> None:
        await self._client.aclose()

    async def get_price(self, mint: str) -> JupiterPrice | None:
        """Quote for one mint, None if Jupiter has no price for it."""
        cached = self._quotes.get(mint)
        if cached is not None and time.monotonic() - cached[0] < self._quote_ttl_sec:
            return cached[1]

        data = await self._fetch({"ids": mint})
        if data is None:
            return None
        quote = _parse_price(data, mint)
        if quote is not None:
            self._store_quote(mint, quote)
        return quote

    async def get_usd_price(self, mint: str) -> float:
        """Raises PriceUnavailableError if the mint is unlisted or quoted at zero."""
        quote = await self.get_price(mint)
        if quote is None or quote.usd_price is None or quote.usd_price <= 0:
            raise PriceUnavailableError(f"No Jupiter price for {mint}")
        return float(quote.usd_price)

    def _store_quote(self, mint: str, quote: JupiterPrice) -> None:
        now = time.monotonic()
        expired = [m for m, (ts, _) in self._quotes.items() if now - ts >= self._quote_ttl_sec]
        for m in expired:
            del self._quotes[m]
        self._quotes[mint] = (now, quote)

    async def _fetch(self, params: dict) -> dict | None:
        for attempt in range(MAX_RETRIES + 1):
            delay = RETRY_DELAYS[min(attempt, len(RETRY_DELAYS) - 1)]
            try:
                await self._rate_limiter.acquire()
                resp = await self._client.get(self._url, params=params)
            except httpx.HTTPError as e:
                if attempt == MAX_RETRIES:
                    logger.warning(f"[JUPITER] Failed after {MAX_RETRIES + 1} attempts: {e}")
                    return None
                logger.debug(f"[JUPITER] {type(e).__name__}, retry in {delay}s")
                await asyncio.sleep(delay)
                continue

            if resp.status_code == 429:
                logger.debug(f"[JUPITER] Rate limited, waiting {delay}s")
                await asyncio.sleep(delay)
                continue
            if resp.status_code != 200:
                logger.debug(f"[JUPITER] HTTP {resp.status_code} for {params['ids']}")
                return None
            try:
                return resp.json()
            except ValueError:
                logger.debug(f"[JUPITER] Non-JSON response for {params['ids']}")
                return None

        return None


def _parse_price(data: dict, mint: str) -> JupiterPrice | None:
    """Pick one mint out of a v3 response (keyed by mint address)."""
    if not isinstance(data, dict):
        return None
    entry = data.get(mint)
    if not entry or entry.get("usdPrice") is None:
        return None
    try:
        usd_price = Decimal(str(entry["usdPrice"]))
    except InvalidOperation:
        logger.debug(f"[JUPITER] Unparseable price for {mint}: {entry['usdPrice']!r}")
        return None

    return JupiterPrice(
        id=mint,
        usd_price=usd_price,
        decimals=entry.get("decimals"),
        block_id=entry.get("blockId"),
        price_change_24h=entry.get("priceChange24h"),
    )
