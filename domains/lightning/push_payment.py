"""
Push Payment Workflow.

Wires the push steps into a task graph and runs it. Each step declares the
steps whose results it reads:

- validate: request checks, before any network call
- get_channels / get_network / get_fiat_price: after validate, concurrently
- get_in_key / get_out_key: routing constraint peers, once channels are known
- fiat_rates: tokens per fiat unit, once prices and network are known
- parse_amount: evaluates the amount expression against fiat and liquidity
- push: sends the payment
- get_adjusted_outbound / liquidity: out peer liquidity after the push
- result: the PushResult returned to the caller
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from domains.lightning.amount_context import build_amount_context, fiat_unit_rates, parse_push_amount
from domains.lightning.collaborators import AmountEvaluator, LightningNode, PeerResolver, PriceFeed, StructuredLogger
from domains.lightning.config import get_price_symbols
from domains.lightning.peer_resolver import ChannelPeerResolver, resolve_peer_key
from domains.lightning.pusher import push_to_destination
from domains.lightning.reconciler import reconcile_outbound_liquidity, report_liquidity_change
from domains.lightning.validator import validate_push_request
from execution.engine import TaskGraphExecutor
from execution.graph import ResultBag, TaskGraph
from observability.logger import Observability
from shared.models import PushRequest, PushResult
from shared.safe_eval import evaluate_amount

logger = logging.getLogger(__name__)


class PushPaymentWorkflow:
    """Task graph for a single push. Build a new instance per request."""

    def __init__(
        self,
        request: PushRequest,
        *,
        node: LightningNode,
        price_feed: PriceFeed,
        observability: StructuredLogger,
        resolver: PeerResolver | None = None,
        evaluator: AmountEvaluator | None = None,
    ):
        self.request = request
        self.node = node
        self.price_feed = price_feed
        self.observability = observability
        self.resolver = resolver or ChannelPeerResolver()
        self.evaluator = evaluator or evaluate_amount

    def build_graph(self) -> TaskGraph:
        return TaskGraph.from_mapping(
            {
                "validate": ((), self.validate),
                "get_channels": (("validate",), self.get_channels),
                "get_network": (("validate",), self.get_network),
                "get_fiat_price": (("validate",), self.get_fiat_price),
                "get_in_key": (("get_channels",), self.get_in_key),
                "get_out_key": (("get_channels",), self.get_out_key),
                "fiat_rates": (("get_fiat_price", "get_network"), self.fiat_rates),
                "parse_amount": (
                    ("fiat_rates", "get_channels", "get_network", "get_out_key"),
                    self.parse_amount,
                ),
                "push": (("get_in_key", "get_out_key", "parse_amount"), self.push),
                "get_adjusted_outbound": (("push", "get_out_key"), self.get_adjusted_outbound),
                "liquidity": (("get_adjusted_outbound", "push", "get_out_key"), self.liquidity),
                "result": (("push", "parse_amount", "liquidity"), self.result),
            },
            final="result",
        )

    # Check arguments before anything touches the network
    def validate(self, results: ResultBag) -> None:
        validate_push_request(self.request)

    async def get_channels(self, results: ResultBag) -> Any:
        return await self.node.get_channels()

    async def get_network(self, results: ResultBag) -> str:
        return await self.node.get_network()

    async def get_fiat_price(self, results: ResultBag) -> Any:
        return await self.price_feed.get_rates(get_price_symbols())

    async def get_in_key(self, results: ResultBag) -> str | None:
        return await resolve_peer_key(self.resolver, results["get_channels"], self._query(self.request.in_through))

    async def get_out_key(self, results: ResultBag) -> str | None:
        return await resolve_peer_key(self.resolver, results["get_channels"], self._query(self.request.out_through))

    def fiat_rates(self, results: ResultBag) -> Any:
        return fiat_unit_rates(results["get_fiat_price"], results["get_network"])

    def parse_amount(self, results: ResultBag) -> int:
        variables = build_amount_context(
            results["fiat_rates"],
            results["get_channels"],
            self.request.destination,
            results["get_out_key"],
        )
        return parse_push_amount(self.evaluator, self.request.amount, variables)

    async def push(self, results: ResultBag) -> Any:
        return await push_to_destination(
            node=self.node,
            observability=self.observability,
            request=self.request,
            tokens=results["parse_amount"],
            in_key=results["get_in_key"],
            out_key=results["get_out_key"],
        )

    async def get_adjusted_outbound(self, results: ResultBag) -> Any:
        return await reconcile_outbound_liquidity(
            node=self.node,
            out_key=results["get_out_key"],
            outcome=results["push"],
        )

    def liquidity(self, results: ResultBag) -> Any:
        return report_liquidity_change(
            observability=self.observability,
            liquidity=results["get_adjusted_outbound"],
            outcome=results["push"],
            out_key=results["get_out_key"],
        )

    def result(self, results: ResultBag) -> PushResult:
        outcome = results["push"]
        return PushResult(
            tokens_sent=results["parse_amount"],
            payment_id=outcome.id,
            preimage=outcome.preimage,
            relays=list(outcome.relays),
            fee_paid=outcome.fee,
            liquidity_change=results["liquidity"],
        )

    @staticmethod
    def _query(value: Any) -> str | None:
        if value is None or value == "":
            return None
        return str(value)


async def push_payment(
    request: PushRequest,
    *,
    node: LightningNode,
    price_feed: PriceFeed,
    observability: StructuredLogger | None = None,
    resolver: PeerResolver | None = None,
    evaluator: AmountEvaluator | None = None,
    executor: TaskGraphExecutor | None = None,
) -> PushResult:
    """Push a payment to a destination. Returns a PushResult or raises exactly one error."""
    obs = observability or Observability()
    workflow = PushPaymentWorkflow(
        request,
        node=node,
        price_feed=price_feed,
        observability=obs,
        resolver=resolver,
        evaluator=evaluator,
    )
    graph = workflow.build_graph()
    runner = executor or TaskGraphExecutor()

    logger.info("Push payment requested: destination=%s dry_run=%s", request.destination, request.is_dry_run)
    with obs.measure("push_payment", {"destination": request.destination}):
        return await runner.execute(graph)


def push_payment_sync(request: PushRequest, **kwargs: Any) -> PushResult:
    """Blocking variant of `push_payment`."""
    return asyncio.run(push_payment(request, **kwargs))
