"""
Push request validation.

Pure and synchronous: runs before any collaborator is contacted. Checks run in
a fixed order and the first violation wins, so callers get a deterministic
error for a given request.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from domains.lightning.config import MAX_QUIZ_ANSWERS, MIN_QUIZ_ANSWERS, PUBLIC_KEY_HEX_LENGTH
from shared.errors import PushError
from shared.models import PushRequest

_PUBLIC_KEY = re.compile(rf"[0-9a-f]{{{PUBLIC_KEY_HEX_LENGTH}}}", re.IGNORECASE)


def is_public_key(value: object) -> bool:
    return isinstance(value, str) and bool(_PUBLIC_KEY.fullmatch(value))


def _is_collection(value: object) -> bool:
    return isinstance(value, (list, tuple, set, frozenset, Mapping))


def validate_push_request(request: PushRequest) -> None:
    """Raise a named PushError for the first structural problem in the request."""
    if not request.amount or not str(request.amount).strip():
        raise PushError(400, "ExpectedAmountToSendInPushPayment")

    if not is_public_key(request.destination):
        raise PushError(400, "ExpectedDestinationToPushPaymentTo")

    if request.in_through is not None and _is_collection(request.in_through):
        raise PushError(400, "MultipleInboundPeersNotSupported")

    if request.out_through is not None and _is_collection(request.out_through):
        raise PushError(400, "MultipleOutboundPeersNotSupported")

    if request.max_fee is None:
        raise PushError(400, "ExpectedMaxFeeAmountToPushPayment")

    answers = request.quiz_answers
    if not isinstance(answers, (list, tuple)):
        raise PushError(400, "ExpectedArrayOfQuizAnswersToPushPayment")

    if answers and not request.message:
        raise PushError(400, "ExpectedQuizQuestionMessageToSendQuiz")

    if answers and len(answers) < MIN_QUIZ_ANSWERS:
        raise PushError(400, "ExpectedMultipleQuizAnswersToSend", {"min": MIN_QUIZ_ANSWERS})

    if len(answers) > MAX_QUIZ_ANSWERS:
        raise PushError(400, "TooManyAnswersForQuiz", {"max": MAX_QUIZ_ANSWERS})
