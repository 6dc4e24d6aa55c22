"""
Amount expression context.

Assembles the variables an amount expression may reference and evaluates the
expression against them:

- ``eur`` / ``usd``: tokens worth one unit of that fiat on the current network
- ``inbound`` / ``outbound`` / ``liquidity``: liquidity with the destination
- ``out_inbound`` / ``out_outbound`` / ``out_liquidity``: liquidity with the
  out-through peer (zeros when no out peer was given)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from types import MappingProxyType
from typing import Mapping

from domains.lightning.collaborators import AmountEvaluator
from domains.lightning.config import FIATS, NETWORK_COINS, TOKENS_PER_COIN
from domains.lightning.liquidity import peer_liquidity
from domains.lightning.schemas import ChannelRecord, FiatRate, FiatUnit
from shared.errors import PushError

logger = logging.getLogger(__name__)


def rate_as_tokens(rate: float) -> float:
    return TOKENS_PER_COIN / rate


def _ticker_rate(tickers: Sequence[FiatRate], symbol: str) -> float:
    for ticker in tickers:
        if ticker.ticker == symbol:
            return ticker.rate
    raise PushError(503, "ExpectedRateForTicker", {"ticker": symbol})


def fiat_unit_rates(tickers: Sequence[FiatRate], network: str) -> list[FiatUnit]:
    """
    Tokens per unit of each configured fiat.

    Rates are quoted per BTC, so the fiat rate is scaled through the network
    coin's own rate: on LTC one EUR is worth ``1e8 / eur_rate * ltc_rate``
    litoshis.
    """
    coin = NETWORK_COINS.get(network)
    if coin is None:
        raise PushError(400, "UnsupportedNetworkForFiatConversion", {"network": network})

    coin_rate = _ticker_rate(tickers, coin)
    return [
        FiatUnit(fiat=fiat, unit=rate_as_tokens(_ticker_rate(tickers, fiat)) * coin_rate)
        for fiat in FIATS
    ]


def build_amount_context(
    fiat_units: Sequence[FiatUnit],
    channels: Sequence[ChannelRecord],
    destination: str,
    out_key: str | None,
) -> Mapping[str, float]:
    """Read-only variable set for one evaluation."""
    destination_liquidity = peer_liquidity(channels, destination)
    out_liquidity = peer_liquidity(channels, out_key)

    variables: dict[str, float] = {unit.fiat.lower(): unit.unit for unit in fiat_units}
    variables.update(
        inbound=destination_liquidity.inbound,
        outbound=destination_liquidity.outbound,
        liquidity=destination_liquidity.liquidity_total,
        out_inbound=out_liquidity.inbound,
        out_outbound=out_liquidity.outbound,
        out_liquidity=out_liquidity.liquidity_total,
    )
    return MappingProxyType(variables)


def parse_push_amount(evaluator: AmountEvaluator, expression: str, variables: Mapping[str, float]) -> int:
    """Evaluate the amount expression, wrapping any evaluator failure."""
    try:
        tokens = int(evaluator(expression, variables))
    except Exception as exc:
        logger.info("Failed to parse push amount %r: %s", expression, exc)
        raise PushError(400, "FailedToParsePushAmount", {"err": exc}) from exc
    return tokens
