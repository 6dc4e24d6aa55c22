"""
Post-push liquidity reconciliation for the out-through peer.
"""

from __future__ import annotations

import logging

from domains.lightning.collaborators import LightningNode, StructuredLogger
from domains.lightning.schemas import PaymentOutcome, PeerLiquidity
from shared.models import LiquidityChange
from shared.response_formatter import tokens_as_big_unit

logger = logging.getLogger(__name__)


def out_peer_of(outcome: PaymentOutcome, out_key: str | None) -> str | None:
    """The first relay is the peer the payment left through."""
    if outcome.relays:
        return outcome.relays[0]
    return out_key


async def reconcile_outbound_liquidity(
    *,
    node: LightningNode,
    out_key: str | None,
    outcome: PaymentOutcome,
) -> PeerLiquidity | None:
    """Re-query the out peer's liquidity; None when the push had no out constraint."""
    if not out_key:
        return None

    peer = out_peer_of(outcome, out_key)
    logger.debug("Reconciling liquidity with out peer %s after payment %s", peer, outcome.id)
    return await node.get_peer_liquidity(peer, settled=outcome.id)


def liquidity_change_report(liquidity: PeerLiquidity, peer: str) -> LiquidityChange:
    return LiquidityChange(
        increased_inbound_on=f"{liquidity.alias} {peer}".strip(),
        liquidity_inbound=tokens_as_big_unit(liquidity.inbound),
        liquidity_inbound_opening=tokens_as_big_unit(liquidity.inbound_opening),
        liquidity_inbound_pending=tokens_as_big_unit(liquidity.inbound_pending),
        liquidity_outbound=tokens_as_big_unit(liquidity.outbound),
        liquidity_outbound_opening=tokens_as_big_unit(liquidity.outbound_opening),
        liquidity_outbound_pending=tokens_as_big_unit(liquidity.outbound_pending),
    )


def report_liquidity_change(
    *,
    observability: StructuredLogger,
    liquidity: PeerLiquidity | None,
    outcome: PaymentOutcome,
    out_key: str | None,
) -> LiquidityChange | None:
    """Build and log the liquidity change report; None when there is nothing to report."""
    if liquidity is None:
        return None

    report = liquidity_change_report(liquidity, out_peer_of(outcome, out_key) or "")
    observability.log_event("liquidity_change", {"liquidity_change": report.model_dump()})
    return report
