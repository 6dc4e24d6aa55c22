"""
Lightning Push: Main CLI Entrypoint.

Wires the node gateway, the price feed and the push workflow, and renders the
outcome in the terminal.
"""

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from domains.lightning.lnd_rest import LndRestNode
from domains.lightning.price_feed import DEFAULT_COINGECKO_URL, CoinGeckoPriceFeed
from domains.lightning.push_payment import push_payment
from entry.cli import CLIAdapter
from observability.logger import Observability
from shared.errors import PushError
from shared.models import PushResult
from shared.response_formatter import format_push_error, format_tokens

# ─── Configuration ──────────────────────────────────────────────

logger = logging.getLogger(__name__)

# Ensure local .env is loaded before reading runtime configuration.
load_dotenv(override=False)

LND_REST_URL = os.getenv("LND_REST_URL", "https://localhost:8080")
LND_MACAROON_HEX = os.getenv("LND_MACAROON_HEX", "").strip()
LND_TLS_CERT_PATH = os.getenv("LND_TLS_CERT_PATH", "").strip() or None
COINGECKO_URL = os.getenv("COINGECKO_URL", DEFAULT_COINGECKO_URL)
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "60"))
LOG_LEVEL = getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO)

# ─── Rich Console ───────────────────────────────────────────────

console = Console()


def setup_logging() -> None:
    """Configure logging."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def build_collaborators() -> tuple[LndRestNode, CoinGeckoPriceFeed]:
    """Node gateway and price feed from environment configuration."""
    if not LND_MACAROON_HEX:
        raise RuntimeError("LND_MACAROON_HEX is not configured.")

    node = LndRestNode(
        base_url=LND_REST_URL,
        macaroon_hex=LND_MACAROON_HEX,
        tls_cert_path=LND_TLS_CERT_PATH,
        timeout=HTTP_TIMEOUT_SECONDS,
    )
    price_feed = CoinGeckoPriceFeed(base_url=COINGECKO_URL, timeout=HTTP_TIMEOUT_SECONDS)
    return node, price_feed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Lightning Push")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    push_parser = subparsers.add_parser("push", help="Push a payment to a destination")
    push_parser.add_argument("amount", help="Amount expression, e.g. 1eur, $10, 50k, inbound/2")
    push_parser.add_argument("destination", help="Destination public key")
    push_parser.add_argument("--max-fee", dest="max_fee", type=int, default=None, help="Maximum fee in tokens")
    push_parser.add_argument("--in", dest="in_through", default=None, help="Pay in through this peer")
    push_parser.add_argument("--out", dest="out_through", default=None, help="Pay out through this peer")
    push_parser.add_argument("--message", default=None, help="Message to include with the payment")
    push_parser.add_argument(
        "--quiz-answer",
        dest="quiz_answers",
        action="append",
        default=[],
        help="Quiz answer (repeat for each answer)",
    )
    push_parser.add_argument("--dry-run", dest="dry_run", action="store_true", help="Do not send the payment")
    return parser


def render_result(result: PushResult) -> None:
    table = Table(box=box.SIMPLE, show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Sent", f"{format_tokens(result.tokens_sent)} ({result.tokens_sent})")
    table.add_row("Fee", str(result.fee_paid))
    table.add_row("Payment", result.payment_id)
    table.add_row("Preimage", result.preimage)
    if result.relays:
        table.add_row("Route", " → ".join(result.relays))

    change = result.liquidity_change
    if change is not None:
        table.add_row("Inbound increased on", change.increased_inbound_on)
        table.add_row("Inbound", change.liquidity_inbound or "0")
        table.add_row("Outbound", change.liquidity_outbound or "0")
        if change.liquidity_inbound_pending or change.liquidity_outbound_pending:
            table.add_row(
                "Pending in/out",
                f"{change.liquidity_inbound_pending or '0'} / {change.liquidity_outbound_pending or '0'}",
            )

    console.print(Panel(table, title="⚡ Payment Pushed", border_style="green", box=box.ROUNDED))


async def run_push(args: argparse.Namespace) -> int:
    cli = CLIAdapter()
    request = cli.read_push_args(args)

    try:
        node, price_feed = build_collaborators()
    except Exception as e:
        console.print(f"[bold red]Failed to initialize node connection:[/] {e}")
        return 1

    try:
        with console.status("[yellow]Pushing payment...[/yellow]", spinner="dots"):
            result = await push_payment(
                request,
                node=node,
                price_feed=price_feed,
                observability=Observability(session_id=cli.session_id),
            )
    except PushError as e:
        style = "yellow" if e.name == "PushPaymentDryRun" else "red"
        console.print(Panel(Text(format_push_error(e), style=f"bold {style}"), title="Push", border_style=style))
        return 0 if e.name == "PushPaymentDryRun" else 1
    except Exception as e:
        logger.exception("Push payment crashed")
        console.print(f"[bold red]Push failed:[/] {format_push_error(e)}")
        return 1

    render_result(result)
    return 0


def main() -> int:
    """Entrypoint with CLI args."""
    setup_logging()

    parser = build_parser()
    args = parser.parse_args()

    if args.command == "push":
        try:
            return asyncio.run(run_push(args))
        except KeyboardInterrupt:
            return 130

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
