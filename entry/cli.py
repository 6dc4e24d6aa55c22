"""
CLI Entry Adapter.

Responsibility:
- Receive push arguments from the terminal
- Normalize them to the PushRequest contract
- NO validation, NO domain logic, NO node access
"""

import argparse
import uuid

from shared.models import PushRequest


class CLIAdapter:
    """Command-line entry adapter."""

    def __init__(self, session_id: str | None = None):
        self.session_id = session_id or str(uuid.uuid4())[:8]

    def read_push_args(self, args: argparse.Namespace) -> PushRequest:
        """Normalize parsed `push` arguments to a PushRequest."""
        return PushRequest(
            amount=str(args.amount or "").strip(),
            destination=str(args.destination or "").strip(),
            in_through=(args.in_through or "").strip() or None,
            out_through=(args.out_through or "").strip() or None,
            is_dry_run=bool(args.dry_run),
            max_fee=args.max_fee,
            message=args.message or None,
            quiz_answers=list(args.quiz_answers or []),
        )
