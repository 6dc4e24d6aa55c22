"""
Payment pusher.

Sends the evaluated amount to the destination through the node, carrying
quiz answers as custom records. A dry run logs the would-be payment and then
stops with a named error rather than succeeding silently.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from domains.lightning.collaborators import LightningNode, StructuredLogger
from domains.lightning.config import MAX_QUIZ_ANSWERS, MIN_TOKENS, QUIZ_RECORD_START
from domains.lightning.schemas import CustomRecord, PaymentOutcome
from shared.errors import PushError
from shared.models import PushRequest
from shared.response_formatter import format_tokens

logger = logging.getLogger(__name__)


def utf8_as_hex(text: str) -> str:
    return text.encode("utf-8").hex()


def quiz_records(answers: Sequence[str]) -> list[CustomRecord]:
    """Custom records for quiz answers: type QUIZ_RECORD_START + position."""
    if len(answers) > MAX_QUIZ_ANSWERS:
        raise PushError(400, "TooManyAnswersForQuiz", {"max": MAX_QUIZ_ANSWERS})
    return [
        CustomRecord(type=str(QUIZ_RECORD_START + index), value=utf8_as_hex(str(answer)))
        for index, answer in enumerate(answers)
    ]


async def push_to_destination(
    *,
    node: LightningNode,
    observability: StructuredLogger,
    request: PushRequest,
    tokens: int,
    in_key: str | None,
    out_key: str | None,
) -> PaymentOutcome:
    """Push `tokens` to the request's destination and require a preimage back."""
    if tokens < MIN_TOKENS:
        raise PushError(400, "ExpectedNonZeroAmountToPushPayment")

    observability.log_event(
        "push_payment",
        {"paying": format_tokens(tokens), "to": request.destination},
    )

    if request.is_dry_run:
        raise PushError(400, "PushPaymentDryRun")

    records = quiz_records(list(request.quiz_answers or []))
    logger.info("Pushing %d tokens to %s", tokens, request.destination)

    outcome = await node.push_payment(
        destination=request.destination,
        tokens=tokens,
        max_fee=request.max_fee,
        in_through=in_key,
        out_through=out_key,
        records=records,
        message=request.message,
    )

    if not outcome.preimage:
        raise PushError(503, "UnexpectedSendPaymentFailure", {"payment_id": outcome.id})

    return outcome
