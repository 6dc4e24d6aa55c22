"""
CoinGecko price feed.

Responsibility:
- GET /exchange_rates (all rates quoted per BTC)
- Return one FiatRate per requested symbol
- Convert network and payload errors into named PushErrors
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from domains.lightning.schemas import FiatRate
from shared.errors import PushError

logger = logging.getLogger(__name__)

DEFAULT_COINGECKO_URL = "https://api.coingecko.com/api/v3"


class CoinGeckoPriceFeed:
    """Price feed backed by the public CoinGecko exchange rates endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_COINGECKO_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.headers = {"Accept": "application/json"}

    async def get_rates(self, symbols: Sequence[str]) -> list[FiatRate]:
        url = f"{self.base_url}/exchange_rates"

        try:
            logger.info("Fetching exchange rates: %s symbols=%s", url, list(symbols))
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, headers=self.headers)
        except httpx.RequestError as e:
            logger.error("Network error fetching exchange rates from '%s': %r", url, e)
            raise PushError(503, "FailedToGetExchangeRates", {"err": str(e)}) from e

        if response.status_code != 200:
            logger.error("Rate provider error %s: %s", response.status_code, response.text)
            raise PushError(
                503,
                "UnexpectedResponseFromRateProvider",
                {"status_code": response.status_code},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PushError(503, "UnexpectedResponseFromRateProvider", {"err": str(e)}) from e

        rates = data.get("rates") if isinstance(data, dict) else None
        if not isinstance(rates, dict):
            raise PushError(503, "ExpectedExchangeRatesFromRateProvider")

        tickers: list[FiatRate] = []
        for symbol in symbols:
            entry = rates.get(symbol.lower())
            value = entry.get("value") if isinstance(entry, dict) else None
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                raise PushError(503, "ExpectedRateForTicker", {"ticker": symbol})
            tickers.append(FiatRate(ticker=symbol.upper(), rate=float(value)))

        return tickers
