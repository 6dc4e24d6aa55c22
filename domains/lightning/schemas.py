"""
Lightning domain schemas.

Shapes of the data exchanged with the node, the price feed and the
liquidity queries. Owned by the collaborators; the workflow only reads them.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class PendingPayment(BaseModel):
    """In-flight HTLC on a channel."""
    model_config = {"frozen": True}

    tokens: int = Field(..., ge=0)
    is_outgoing: bool


class ChannelRecord(BaseModel):
    model_config = {"frozen": True}

    id: str | None = Field(default=None, description="Short channel id, e.g. '700000x1x0'")
    partner_public_key: str
    partner_alias: str = Field(default="", description="Peer alias when known")
    capacity: int = Field(default=0, ge=0)
    local_balance: int = Field(default=0, ge=0)
    remote_balance: int = Field(default=0, ge=0)
    pending_payments: list[PendingPayment] = Field(default_factory=list)


class LiquiditySnapshot(BaseModel):
    """Liquidity with one peer, pending HTLCs counted as if settled."""
    model_config = {"frozen": True}

    inbound: int = 0
    outbound: int = 0
    liquidity_total: int = 0


class FiatRate(BaseModel):
    """Price ticker: units of `ticker` per BTC."""
    model_config = {"frozen": True}

    ticker: str
    rate: float = Field(..., gt=0)


class FiatUnit(BaseModel):
    """Tokens worth one unit of `fiat` on the current network."""
    model_config = {"frozen": True}

    fiat: str
    unit: float


class CustomRecord(BaseModel):
    """TLV record attached to a payment; value is hex encoded."""
    model_config = {"frozen": True}

    type: str
    value: str


class PaymentOutcome(BaseModel):
    """What the payment collaborator reports after a push attempt."""
    model_config = {"frozen": True}

    id: str = Field(..., description="Payment hash hex")
    preimage: str | None = Field(default=None, description="Payment preimage hex, None when unconfirmed")
    relays: list[str] = Field(default_factory=list, description="Public keys of the hops, out peer first")
    fee: int = Field(default=0, ge=0)


class PeerLiquidity(BaseModel):
    """Liquidity with a peer as reported by the node after a payment."""
    model_config = {"frozen": True}

    alias: str = ""
    inbound: int = 0
    inbound_opening: int = 0
    inbound_pending: int = 0
    outbound: int = 0
    outbound_opening: int = 0
    outbound_pending: int = 0
