import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from domains.lightning.push_payment import PushPaymentWorkflow, push_payment, push_payment_sync
from domains.lightning.schemas import ChannelRecord, FiatRate, PaymentOutcome, PeerLiquidity
from shared.errors import PushError
from shared.models import PushRequest

DESTINATION = "02" + "cd" * 32
OUT_PEER = "03" + "ef" * 32
PAYMENT_ID = "aa" * 32
PREIMAGE = "bb" * 32

CHANNELS = [
    ChannelRecord(
        id="700000x1x0",
        partner_public_key=DESTINATION,
        partner_alias="destination",
        capacity=1_000_000,
        local_balance=500_000,
        remote_balance=500_000,
    ),
    ChannelRecord(
        id="700001x2x1",
        partner_public_key=OUT_PEER,
        partner_alias="outhub",
        capacity=2_000_000,
        local_balance=1_200_000,
        remote_balance=800_000,
    ),
]

RATES = [
    FiatRate(ticker="BTC", rate=1.0),
    FiatRate(ticker="LTC", rate=400.0),
    FiatRate(ticker="EUR", rate=40_000.0),
    FiatRate(ticker="USD", rate=50_000.0),
]


def _collaborators() -> tuple[MagicMock, MagicMock]:
    node = MagicMock()
    node.get_channels = AsyncMock(return_value=CHANNELS)
    node.get_network = AsyncMock(return_value="btc")
    node.push_payment = AsyncMock(
        return_value=PaymentOutcome(id=PAYMENT_ID, preimage=PREIMAGE, relays=[OUT_PEER, DESTINATION], fee=1)
    )
    node.get_peer_liquidity = AsyncMock(
        return_value=PeerLiquidity(alias="outhub", inbound=802_501, outbound=1_197_499)
    )

    price_feed = MagicMock()
    price_feed.get_rates = AsyncMock(return_value=RATES)
    return node, price_feed


def _push(request: PushRequest, node: MagicMock, price_feed: MagicMock, observability: MagicMock | None = None):
    return asyncio.run(
        push_payment(
            request,
            node=node,
            price_feed=price_feed,
            observability=observability or MagicMock(),
        )
    )


def test_push_payment_converts_fiat_amount_and_pushes() -> None:
    node, price_feed = _collaborators()
    observability = MagicMock()

    result = _push(PushRequest(amount="1eur", destination=DESTINATION, max_fee=5), node, price_feed, observability)

    assert result.tokens_sent == 2_500
    assert result.payment_id == PAYMENT_ID
    assert result.preimage == PREIMAGE
    assert result.fee_paid == 1
    assert result.liquidity_change is None
    price_feed.get_rates.assert_awaited_once_with(["BTC", "LTC", "EUR", "USD"])
    node.push_payment.assert_awaited_once()
    assert node.push_payment.await_args.kwargs["tokens"] == 2_500
    assert node.push_payment.await_args.kwargs["in_through"] is None
    assert node.push_payment.await_args.kwargs["out_through"] is None
    node.get_peer_liquidity.assert_not_awaited()
    observability.log_event.assert_any_call("push_payment", {"paying": "0.00002500", "to": DESTINATION})


def test_push_payment_amount_can_reference_destination_liquidity() -> None:
    node, price_feed = _collaborators()

    result = _push(PushRequest(amount="inbound / 10", destination=DESTINATION, max_fee=5), node, price_feed)

    assert result.tokens_sent == 50_000


def test_push_payment_dry_run_stops_before_sending() -> None:
    node, price_feed = _collaborators()
    observability = MagicMock()

    with pytest.raises(PushError) as excinfo:
        _push(
            PushRequest(amount="1eur", destination=DESTINATION, max_fee=5, is_dry_run=True),
            node,
            price_feed,
            observability,
        )

    assert excinfo.value.as_tuple() == [400, "PushPaymentDryRun"]
    node.push_payment.assert_not_awaited()
    node.get_peer_liquidity.assert_not_awaited()
    observability.log_event.assert_any_call("push_payment", {"paying": "0.00002500", "to": DESTINATION})


def test_push_payment_rejects_amount_rounding_to_zero() -> None:
    node, price_feed = _collaborators()

    with pytest.raises(PushError) as excinfo:
        _push(PushRequest(amount="0", destination=DESTINATION, max_fee=5), node, price_feed)

    assert excinfo.value.name == "ExpectedNonZeroAmountToPushPayment"
    node.push_payment.assert_not_awaited()


def test_push_payment_validation_failure_makes_no_network_calls() -> None:
    node, price_feed = _collaborators()

    with pytest.raises(PushError) as excinfo:
        _push(PushRequest(amount="1eur", destination=DESTINATION), node, price_feed)

    assert excinfo.value.name == "ExpectedMaxFeeAmountToPushPayment"
    node.get_channels.assert_not_awaited()
    node.get_network.assert_not_awaited()
    price_feed.get_rates.assert_not_awaited()


def test_push_payment_with_out_peer_reports_liquidity_change() -> None:
    node, price_feed = _collaborators()
    observability = MagicMock()

    result = _push(
        PushRequest(amount="out_outbound - 1m", destination=DESTINATION, max_fee=5, out_through="outhub"),
        node,
        price_feed,
        observability,
    )

    assert result.tokens_sent == 200_000
    assert node.push_payment.await_args.kwargs["out_through"] == OUT_PEER
    node.get_peer_liquidity.assert_awaited_once_with(OUT_PEER, settled=PAYMENT_ID)
    assert result.liquidity_change is not None
    assert result.liquidity_change.increased_inbound_on == f"outhub {OUT_PEER}"
    assert result.liquidity_change.liquidity_inbound == "0.00802501"
    assert result.liquidity_change.liquidity_outbound == "0.01197499"
    observability.log_event.assert_any_call(
        "liquidity_change",
        {"liquidity_change": result.liquidity_change.model_dump()},
    )


def test_push_payment_propagates_collaborator_error_unchanged() -> None:
    node, price_feed = _collaborators()
    failure = PushError(503, "FailedToGetExchangeRates", {"err": "timeout"})
    price_feed.get_rates = AsyncMock(side_effect=failure)

    with pytest.raises(PushError) as excinfo:
        _push(PushRequest(amount="1eur", destination=DESTINATION, max_fee=5), node, price_feed)

    assert excinfo.value is failure
    node.push_payment.assert_not_awaited()


def test_push_payment_wraps_unparseable_amount() -> None:
    node, price_feed = _collaborators()

    with pytest.raises(PushError) as excinfo:
        _push(PushRequest(amount="1 +", destination=DESTINATION, max_fee=5), node, price_feed)

    assert excinfo.value.code == 400
    assert excinfo.value.name == "FailedToParsePushAmount"
    node.push_payment.assert_not_awaited()


def test_push_payment_unknown_out_peer_fails_before_sending() -> None:
    node, price_feed = _collaborators()

    with pytest.raises(PushError) as excinfo:
        _push(
            PushRequest(amount="1eur", destination=DESTINATION, max_fee=5, out_through="nobody"),
            node,
            price_feed,
        )

    assert excinfo.value.as_tuple() == [404, "FailedToFindPeerMatchingQuery", {"query": "nobody"}]
    node.push_payment.assert_not_awaited()


def test_push_payment_sync_blocks_until_result() -> None:
    node, price_feed = _collaborators()

    result = push_payment_sync(
        PushRequest(amount="$1", destination=DESTINATION, max_fee=5),
        node=node,
        price_feed=price_feed,
        observability=MagicMock(),
    )

    assert result.tokens_sent == 2_000


def test_workflow_graph_ends_with_result_and_starts_with_validation() -> None:
    node, price_feed = _collaborators()
    graph = PushPaymentWorkflow(
        PushRequest(amount="1eur", destination=DESTINATION, max_fee=5),
        node=node,
        price_feed=price_feed,
        observability=MagicMock(),
    ).build_graph()

    assert graph.final == "result"
    assert graph.nodes["validate"].dependencies == frozenset()
    for name in ("get_channels", "get_network", "get_fiat_price"):
        assert graph.nodes[name].dependencies == frozenset({"validate"})


def test_push_payment_rejects_empty_peer_list_before_network_calls() -> None:
    node, price_feed = _collaborators()

    with pytest.raises(PushError) as excinfo:
        _push(PushRequest(amount="1eur", destination=DESTINATION, max_fee=5, in_through=[]), node, price_feed)

    assert excinfo.value.as_tuple() == [400, "MultipleInboundPeersNotSupported"]
    node.get_channels.assert_not_awaited()
    price_feed.get_rates.assert_not_awaited()


def test_push_payment_matches_uppercase_destination_to_channel_liquidity() -> None:
    node, price_feed = _collaborators()

    result = _push(PushRequest(amount="inbound / 10", destination=DESTINATION.upper(), max_fee=5), node, price_feed)

    assert result.tokens_sent == 50_000
