import pytest

from shared.safe_eval import AmountExpressionError, evaluate_amount

VARIABLES = {
    "eur": 2500.0,
    "usd": 1500.5,
    "inbound": 500_000,
    "outbound": 120_000,
    "liquidity": 1_000_000,
    "out_inbound": 0,
    "out_outbound": 0,
    "out_liquidity": 0,
}


def test_evaluate_amount_supports_fiat_suffix() -> None:
    assert evaluate_amount("1eur", VARIABLES) == 2500
    assert evaluate_amount("2.5 EUR", VARIABLES) == 6250


def test_evaluate_amount_supports_currency_prefix() -> None:
    assert evaluate_amount("$10", VARIABLES) == 15005
    assert evaluate_amount("€2", VARIABLES) == 5000


def test_evaluate_amount_supports_unit_multipliers() -> None:
    assert evaluate_amount("10k", VARIABLES) == 10_000
    assert evaluate_amount("2m", VARIABLES) == 2_000_000
    assert evaluate_amount("0.1btc", VARIABLES) == 10_000_000
    assert evaluate_amount("1e3", VARIABLES) == 1_000


def test_evaluate_amount_supports_liquidity_formulas() -> None:
    assert evaluate_amount("(inbound - outbound) / 2", VARIABLES) == 190_000
    assert evaluate_amount("min(inbound, 100k) + 1eur", VARIABLES) == 102_500
    assert evaluate_amount("liquidity * 0.1 - outbound", VARIABLES) == -20_000


def test_evaluate_amount_rounds_down_to_whole_tokens() -> None:
    assert evaluate_amount("10 / 3", VARIABLES) == 3
    assert evaluate_amount("0.7 * 10", VARIABLES) == 7


def test_evaluate_amount_rejects_unknown_variable() -> None:
    with pytest.raises(AmountExpressionError, match="Unknown amount variable"):
        evaluate_amount("1gbp", VARIABLES)


def test_evaluate_amount_rejects_unsafe_calls() -> None:
    with pytest.raises(AmountExpressionError):
        evaluate_amount("__import__('os').system('echo hacked')", VARIABLES)


def test_evaluate_amount_rejects_malformed_and_empty_expressions() -> None:
    with pytest.raises(AmountExpressionError):
        evaluate_amount("1 +", VARIABLES)
    with pytest.raises(AmountExpressionError):
        evaluate_amount("   ", VARIABLES)
    with pytest.raises(AmountExpressionError, match="Division by zero"):
        evaluate_amount("1 / out_liquidity", VARIABLES)
