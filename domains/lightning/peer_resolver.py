"""
Peer key resolution for routing constraints.

`resolve_peer_key` is the workflow step: no query means no constraint.
`ChannelPeerResolver` is the default resolver, matching a query against the
peers the node already has channels with.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from domains.lightning.collaborators import PeerResolver
from domains.lightning.schemas import ChannelRecord
from domains.lightning.validator import is_public_key
from shared.errors import PushError

logger = logging.getLogger(__name__)


class ChannelPeerResolver:
    """
    Resolve a free-form peer query using channel data.

    A query may be a full public key, a short channel id, a public key
    prefix, or part of a peer alias (case-insensitive). It must identify
    exactly one peer.
    """

    async def find_key(self, channels: Sequence[ChannelRecord], query: str) -> str:
        needle = str(query or "").strip()
        if not needle:
            raise PushError(400, "ExpectedPeerQueryToFindPublicKey")

        if is_public_key(needle):
            return needle.lower()

        by_channel_id = {channel.partner_public_key for channel in channels if channel.id == needle}
        if len(by_channel_id) == 1:
            return by_channel_id.pop()

        lowered = needle.lower()
        matches = sorted({
            channel.partner_public_key
            for channel in channels
            if channel.partner_public_key.lower().startswith(lowered)
            or (channel.partner_alias and lowered in channel.partner_alias.lower())
        })

        if not matches:
            raise PushError(404, "FailedToFindPeerMatchingQuery", {"query": needle})

        if len(matches) > 1:
            raise PushError(
                400,
                "AmbiguousPeerQueryMatchesMultiplePeers",
                {"query": needle, "matches": matches},
            )

        logger.debug("Resolved peer query %r to %s", needle, matches[0])
        return matches[0]


async def resolve_peer_key(
    resolver: PeerResolver,
    channels: Sequence[ChannelRecord],
    query: str | None,
) -> str | None:
    """Public key for a routing constraint, or None when no constraint was given."""
    if not query:
        return None
    return await resolver.find_key(channels, query)
