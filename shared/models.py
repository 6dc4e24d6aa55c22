"""
Shared Pydantic models for all layers.
All contexts are immutable (frozen) after creation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


# ─── Entry Layer ───────────────────────────────────────────────

class PushRequest(BaseModel):
    """Caller-supplied parameters for a single payment push.

    Field types are deliberately loose: structural checks (a list of peers
    where one is expected, a missing fee) are reported by the push validator
    with named errors rather than by model parsing.
    """
    model_config = {"frozen": True}

    amount: str = Field(default="", description="Amount expression, e.g. '1eur', '$10', '50k', 'inbound/2'")
    destination: str = Field(default="", description="Destination public key hex")
    in_through: Any = Field(default=None, description="Peer the payment must arrive through")
    out_through: Any = Field(default=None, description="Peer the payment must leave through")
    is_dry_run: bool = Field(default=False, description="Log the would-be payment but do not send it")
    max_fee: int | None = Field(default=None, description="Maximum routing fee in tokens")
    message: str | None = Field(default=None, description="Message to include with the payment")
    quiz_answers: Any = Field(default_factory=list, description="Quiz answers sent as custom records")


# ─── Result Layer ──────────────────────────────────────────────

class LiquidityChange(BaseModel):
    """Liquidity with the out peer after the push, in whole-coin strings."""
    model_config = {"frozen": True}

    increased_inbound_on: str
    liquidity_inbound: str | None = None
    liquidity_inbound_opening: str | None = None
    liquidity_inbound_pending: str | None = None
    liquidity_outbound: str | None = None
    liquidity_outbound_opening: str | None = None
    liquidity_outbound_pending: str | None = None


class PushResult(BaseModel):
    """Outcome of a successful push. Produced once per run."""
    model_config = {"frozen": True}

    tokens_sent: int
    payment_id: str
    preimage: str
    relays: list[str] = Field(default_factory=list)
    fee_paid: int = 0
    liquidity_change: LiquidityChange | None = None
