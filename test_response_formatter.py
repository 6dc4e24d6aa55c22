from __future__ import annotations

from shared.errors import PushError
from shared.response_formatter import (
    error_payload,
    format_push_error,
    format_tokens,
    tokens_as_big_unit,
)


def test_tokens_as_big_unit_uses_eight_decimals():
    assert tokens_as_big_unit(2_500) == "0.00002500"
    assert tokens_as_big_unit(150_000_000) == "1.50000000"


def test_tokens_as_big_unit_omits_zero_and_missing_amounts():
    assert tokens_as_big_unit(0) is None
    assert tokens_as_big_unit(None) is None


def test_format_tokens_keeps_zero():
    assert format_tokens(0) == "0.00000000"


def test_format_push_error_names_code_and_context():
    error = PushError(400, "ExpectedMultipleQuizAnswersToSend", {"min": 2})

    assert format_push_error(error) == "[400] ExpectedMultipleQuizAnswersToSend (min=2)"
    assert format_push_error(PushError(400, "PushPaymentDryRun")) == "[400] PushPaymentDryRun"
    assert format_push_error(RuntimeError("boom")) == "RuntimeError: boom"


def test_error_payload_is_json_safe():
    wrapped = PushError(400, "FailedToParsePushAmount", {"err": ValueError("Unknown amount variable: gbp")})

    assert error_payload(wrapped) == [400, "FailedToParsePushAmount", {"err": "Unknown amount variable: gbp"}]
    assert error_payload(PushError(503, "FailedToPushPayment")) == [503, "FailedToPushPayment"]
    assert error_payload(KeyError("x")) == [500, "UnexpectedPushPaymentError", {"err": "'x'"}]
