"""
Collaborator contracts for the push workflow.

Defines the protocols the workflow depends on:
- LightningNode (channels, network, payment execution, peer liquidity)
- PriceFeed (fiat and coin tickers)
- PeerResolver (peer query → public key)
- AmountEvaluator (amount expression → tokens)
- StructuredLogger (observability records)

Concrete implementations live in `lnd_rest`, `price_feed`, `peer_resolver`
and `shared.safe_eval`; tests substitute mocks.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, ContextManager, Protocol, runtime_checkable

from domains.lightning.schemas import ChannelRecord, CustomRecord, FiatRate, PaymentOutcome, PeerLiquidity


@runtime_checkable
class LightningNode(Protocol):
    """Authenticated access to the paying node."""

    async def get_channels(self) -> list[ChannelRecord]:
        ...

    async def get_network(self) -> str:
        """Network name such as 'btc', 'btctestnet' or 'ltc'."""
        ...

    async def push_payment(
        self,
        *,
        destination: str,
        tokens: int,
        max_fee: int,
        in_through: str | None,
        out_through: str | None,
        records: Sequence[CustomRecord],
        message: str | None,
    ) -> PaymentOutcome:
        """
        Route a spontaneous payment to `destination`.

        Returns the outcome even when no preimage was obtained; the caller
        decides whether that is a failure.
        """
        ...

    async def get_peer_liquidity(self, public_key: str, settled: str | None = None) -> PeerLiquidity:
        """Liquidity with a peer, treating HTLCs of payment `settled` as resolved."""
        ...


@runtime_checkable
class PriceFeed(Protocol):
    async def get_rates(self, symbols: Sequence[str]) -> list[FiatRate]:
        """Return one ticker per requested symbol, or raise."""
        ...


@runtime_checkable
class PeerResolver(Protocol):
    async def find_key(self, channels: Sequence[ChannelRecord], query: str) -> str:
        """Resolve a query to exactly one public key, or raise."""
        ...


class AmountEvaluator(Protocol):
    def __call__(self, expression: str, variables: Mapping[str, float]) -> int:
        ...


class StructuredLogger(Protocol):
    def log_event(self, event_type: str, payload: dict[str, Any], level: str = "INFO") -> None:
        ...

    def measure(self, operation: str, metadata: dict[str, Any] | None = None) -> ContextManager[None]:
        ...
