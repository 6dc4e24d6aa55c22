import pytest

from domains.lightning.amount_context import build_amount_context, fiat_unit_rates, parse_push_amount
from domains.lightning.schemas import ChannelRecord, FiatRate, FiatUnit, PendingPayment
from shared.errors import PushError
from shared.safe_eval import AmountExpressionError, evaluate_amount

DESTINATION = "02" + "dd" * 32
OUT_PEER = "03" + "ee" * 32

TICKERS = [
    FiatRate(ticker="BTC", rate=1.0),
    FiatRate(ticker="LTC", rate=400.0),
    FiatRate(ticker="EUR", rate=40_000.0),
    FiatRate(ticker="USD", rate=50_000.0),
]


def test_fiat_unit_rates_on_bitcoin_network() -> None:
    units = {unit.fiat: unit.unit for unit in fiat_unit_rates(TICKERS, "btc")}

    assert units == {"EUR": 2_500.0, "USD": 2_000.0}


def test_fiat_unit_rates_scale_through_network_coin_rate() -> None:
    units = {unit.fiat: unit.unit for unit in fiat_unit_rates(TICKERS, "ltc")}

    assert units["EUR"] == pytest.approx(1_000_000.0)
    assert units["USD"] == pytest.approx(800_000.0)


def test_fiat_unit_rates_reject_unknown_network() -> None:
    with pytest.raises(PushError) as excinfo:
        fiat_unit_rates(TICKERS, "dogecoin")

    assert excinfo.value.name == "UnsupportedNetworkForFiatConversion"


def test_fiat_unit_rates_require_every_ticker() -> None:
    tickers = [ticker for ticker in TICKERS if ticker.ticker != "USD"]

    with pytest.raises(PushError) as excinfo:
        fiat_unit_rates(tickers, "btc")

    assert excinfo.value.as_tuple() == [503, "ExpectedRateForTicker", {"ticker": "USD"}]


def test_build_amount_context_computes_destination_and_out_peer_separately() -> None:
    channels = [
        ChannelRecord(
            partner_public_key=DESTINATION,
            capacity=1_000_000,
            local_balance=300_000,
            remote_balance=600_000,
            pending_payments=[PendingPayment(tokens=10_000, is_outgoing=False)],
        ),
        ChannelRecord(
            partner_public_key=OUT_PEER,
            capacity=2_000_000,
            local_balance=1_500_000,
            remote_balance=400_000,
            pending_payments=[PendingPayment(tokens=20_000, is_outgoing=True)],
        ),
    ]
    units = [FiatUnit(fiat="EUR", unit=2_500.0), FiatUnit(fiat="USD", unit=2_000.0)]

    variables = build_amount_context(units, channels, DESTINATION, OUT_PEER)

    assert dict(variables) == {
        "eur": 2_500.0,
        "usd": 2_000.0,
        "inbound": 610_000,
        "outbound": 300_000,
        "liquidity": 1_000_000,
        "out_inbound": 400_000,
        "out_outbound": 1_520_000,
        "out_liquidity": 2_000_000,
    }
    with pytest.raises(TypeError):
        variables["eur"] = 1.0  # type: ignore[index]


def test_build_amount_context_without_out_peer_has_zero_out_figures() -> None:
    variables = build_amount_context([], [], DESTINATION, None)

    assert variables["out_inbound"] == 0
    assert variables["out_outbound"] == 0
    assert variables["out_liquidity"] == 0


def test_parse_push_amount_wraps_evaluator_errors() -> None:
    with pytest.raises(PushError) as excinfo:
        parse_push_amount(evaluate_amount, "1xyz", {"eur": 2_500.0})

    error = excinfo.value
    assert error.code == 400
    assert error.name == "FailedToParsePushAmount"
    assert isinstance(error.context["err"], AmountExpressionError)
    assert error.__cause__ is error.context["err"]


def test_parse_push_amount_returns_tokens() -> None:
    assert parse_push_amount(evaluate_amount, "1eur", {"eur": 2_500.0}) == 2_500


def test_parse_push_amount_wraps_non_numeric_evaluator_result() -> None:
    with pytest.raises(PushError) as excinfo:
        parse_push_amount(lambda expression, variables: None, "1eur", {"eur": 2_500.0})

    assert excinfo.value.name == "FailedToParsePushAmount"
    assert isinstance(excinfo.value.__cause__, TypeError)
