"""
LND REST gateway.

Responsibility:
- Implements the LightningNode contract over the LND REST API
- Authenticates with a hex macaroon header, verifies TLS against the node cert
- Maps LND JSON (string-encoded integers, base64 bytes) to domain schemas
- Converts HTTP and LND errors into named PushErrors

Payments are sent as keysend pushes with the preimage chosen locally.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import os
import ssl
from collections.abc import Sequence
from typing import Any

import httpx

from domains.lightning.config import KEYSEND_RECORD_TYPE, MESSAGE_RECORD_TYPE
from domains.lightning.schemas import ChannelRecord, CustomRecord, PaymentOutcome, PeerLiquidity, PendingPayment
from shared.errors import PushError

logger = logging.getLogger(__name__)

# (chain, network) as reported by getinfo → network name
_NETWORK_NAMES = {
    ("bitcoin", "mainnet"): "btc",
    ("bitcoin", "regtest"): "btcregtest",
    ("bitcoin", "signet"): "btcsignet",
    ("bitcoin", "testnet"): "btctestnet",
    ("litecoin", "mainnet"): "ltc",
}


def b64_from_hex(value: str) -> str:
    return base64.b64encode(bytes.fromhex(value)).decode("ascii")


def hex_from_b64(value: str | None) -> str:
    if not value:
        return ""
    return base64.b64decode(value).hex()


def short_channel_id(chan_id: int | str) -> str:
    """Numeric channel id → 'block x tx x output' form."""
    number = int(chan_id)
    return f"{number >> 40}x{(number >> 16) & 0xFFFFFF}x{number & 0xFFFF}"


def numeric_channel_id(short_id: str) -> str:
    """'block x tx x output' form → numeric channel id string."""
    block, tx, output = (int(part) for part in short_id.split("x"))
    return str((block << 40) | (tx << 16) | output)


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class LndRestNode:
    """LightningNode backed by the LND REST API."""

    def __init__(
        self,
        base_url: str,
        macaroon_hex: str,
        tls_cert_path: str | None = None,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.headers = {"Grpc-Metadata-macaroon": macaroon_hex}
        self.verify: ssl.SSLContext | bool = (
            ssl.create_default_context(cafile=tls_cert_path) if tls_cert_path else True
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                verify=self.verify,
                transport=self.transport,
            ) as client:
                response = await client.request(method, url, params=params, json=payload, headers=self.headers)
        except httpx.RequestError as e:
            logger.error("Network error calling LND '%s': %r", url, e)
            raise PushError(503, "FailedToConnectToLndRestApi", {"path": path, "err": str(e)}) from e

        if response.status_code != 200:
            logger.error("LND error %s on %s: %s", response.status_code, path, response.text)
            detail: Any = response.text
            try:
                body = response.json()
                if isinstance(body, dict):
                    detail = body.get("message") or body.get("error") or detail
            except ValueError:
                pass
            raise PushError(
                503,
                "UnexpectedLndRestApiError",
                {"path": path, "status_code": response.status_code, "message": detail},
            )

        try:
            data = response.json()
        except ValueError as e:
            raise PushError(503, "UnexpectedLndRestApiResponse", {"path": path}) from e
        return data if isinstance(data, dict) else {}

    async def _list_channels(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/v1/channels", params={"peer_alias_lookup": "true"})
        channels = data.get("channels") or []
        return [channel for channel in channels if isinstance(channel, dict)]

    async def get_channels(self) -> list[ChannelRecord]:
        return [
            ChannelRecord(
                id=short_channel_id(channel["chan_id"]) if channel.get("chan_id") else None,
                partner_public_key=str(channel.get("remote_pubkey", "")),
                partner_alias=str(channel.get("peer_alias") or ""),
                capacity=_int(channel.get("capacity")),
                local_balance=_int(channel.get("local_balance")),
                remote_balance=_int(channel.get("remote_balance")),
                pending_payments=[
                    PendingPayment(tokens=_int(htlc.get("amount")), is_outgoing=not htlc.get("incoming", False))
                    for htlc in channel.get("pending_htlcs") or []
                ],
            )
            for channel in await self._list_channels()
        ]

    async def get_network(self) -> str:
        data = await self._request("GET", "/v1/getinfo")
        chains = data.get("chains") or []
        chain = chains[0] if chains and isinstance(chains[0], dict) else {}
        key = (str(chain.get("chain", "")).lower(), str(chain.get("network", "")).lower())
        network = _NETWORK_NAMES.get(key)
        if network is None:
            raise PushError(503, "UnsupportedNetworkReportedByNode", {"chain": key[0], "network": key[1]})
        return network

    async def _outgoing_channel_id(self, public_key: str) -> str:
        """Channel with the most local balance toward `public_key`."""
        candidates = [
            channel for channel in await self._list_channels()
            if channel.get("remote_pubkey") == public_key and channel.get("chan_id")
        ]
        if not candidates:
            raise PushError(400, "ExpectedChannelWithOutboundPeer", {"public_key": public_key})
        best = max(candidates, key=lambda channel: _int(channel.get("local_balance")))
        return str(best["chan_id"])

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
        preimage = os.urandom(32)
        payment_hash = hashlib.sha256(preimage).digest()

        custom_records = {record.type: b64_from_hex(record.value) for record in records}
        if message:
            custom_records[str(MESSAGE_RECORD_TYPE)] = base64.b64encode(message.encode("utf-8")).decode("ascii")
        custom_records[str(KEYSEND_RECORD_TYPE)] = base64.b64encode(preimage).decode("ascii")

        payload: dict[str, Any] = {
            "dest": b64_from_hex(destination),
            "amt": str(tokens),
            "payment_hash": base64.b64encode(payment_hash).decode("ascii"),
            "dest_custom_records": custom_records,
            "fee_limit": {"fixed": str(max_fee)},
        }
        if in_through:
            payload["last_hop_pubkey"] = b64_from_hex(in_through)
        if out_through:
            payload["outgoing_chan_id"] = await self._outgoing_channel_id(out_through)

        logger.info("Sending keysend payment: destination=%s tokens=%d", destination, tokens)
        data = await self._request("POST", "/v1/channels/transactions", payload=payload)

        if data.get("payment_error"):
            raise PushError(503, "FailedToPushPayment", {"err": data["payment_error"]})

        route = data.get("payment_route") or {}
        return PaymentOutcome(
            id=payment_hash.hex(),
            preimage=hex_from_b64(data.get("payment_preimage")) or None,
            relays=[str(hop.get("pub_key")) for hop in route.get("hops") or [] if hop.get("pub_key")],
            fee=_int(route.get("total_fees")),
        )

    async def _node_alias(self, public_key: str) -> str:
        try:
            data = await self._request("GET", f"/v1/graph/node/{public_key}")
        except PushError as e:
            logger.warning("Failed to look up alias for %s: %s", public_key, e.name)
            return ""
        node = data.get("node") or {}
        return str(node.get("alias") or "")

    async def get_peer_liquidity(self, public_key: str, settled: str | None = None) -> PeerLiquidity:
        channels = [c for c in await self._list_channels() if c.get("remote_pubkey") == public_key]
        pending = await self._request("GET", "/v1/channels/pending")
        opening = [
            entry.get("channel") or {}
            for entry in pending.get("pending_open_channels") or []
            if (entry.get("channel") or {}).get("remote_node_pub") == public_key
        ]

        htlcs = [
            htlc
            for channel in channels
            for htlc in channel.get("pending_htlcs") or []
            if not settled or hex_from_b64(htlc.get("hash_lock")) != settled
        ]

        return PeerLiquidity(
            alias=await self._node_alias(public_key),
            inbound=sum(_int(c.get("remote_balance")) for c in channels),
            inbound_opening=sum(_int(c.get("remote_balance")) for c in opening),
            inbound_pending=sum(_int(h.get("amount")) for h in htlcs if h.get("incoming")),
            outbound=sum(_int(c.get("local_balance")) for c in channels),
            outbound_opening=sum(_int(c.get("local_balance")) for c in opening),
            outbound_pending=sum(_int(h.get("amount")) for h in htlcs if not h.get("incoming")),
        )
