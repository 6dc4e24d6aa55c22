"""
Channel liquidity aggregation.

Sums balances across every channel held with a peer. Pending payments are
counted optimistically: an incoming HTLC is credited to inbound (remote)
balance and an outgoing HTLC to outbound (local) balance, as if each would
fail back and settle on its originating side.
"""

from __future__ import annotations

from collections.abc import Iterable

from domains.lightning.schemas import ChannelRecord, LiquiditySnapshot


def channels_with_peer(channels: Iterable[ChannelRecord], public_key: str | None) -> list[ChannelRecord]:
    if not public_key:
        return []
    key = public_key.lower()
    return [channel for channel in channels if channel.partner_public_key.lower() == key]


def inbound_liquidity(channel: ChannelRecord) -> int:
    pending = sum(payment.tokens for payment in channel.pending_payments if not payment.is_outgoing)
    return channel.remote_balance + pending


def outbound_liquidity(channel: ChannelRecord) -> int:
    pending = sum(payment.tokens for payment in channel.pending_payments if payment.is_outgoing)
    return channel.local_balance + pending


def peer_liquidity(channels: Iterable[ChannelRecord], public_key: str | None) -> LiquiditySnapshot:
    """Liquidity snapshot for `public_key`; an absent key yields all zeros."""
    peer_channels = channels_with_peer(channels, public_key)
    return LiquiditySnapshot(
        inbound=sum(inbound_liquidity(channel) for channel in peer_channels),
        outbound=sum(outbound_liquidity(channel) for channel in peer_channels),
        liquidity_total=sum(channel.capacity for channel in peer_channels),
    )
