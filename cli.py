#!/usr/bin/env python3
"""Command-line front end for watching an on-ramp payment settle"""

import argparse
import asyncio
from decimal import Decimal, InvalidOperation
from typing import Optional, Set

from rampwatch.config import settings
from rampwatch.core.payment import (
    ManualCopy,
    PageState,
    PageStatus,
    PaymentPageController,
    RampContext,
    explorer_url,
    format_amount,
    start_onramp,
)
from rampwatch.core.recovery import RampError
from rampwatch.logging_config import setup_logging


def print_state(state: PageState) -> None:
    """Pretty print the page state"""
    if state.status is PageStatus.LOADING:
        print("⏳ Verifying your payment...")
        return

    if state.status is PageStatus.AUTH_REQUIRED:
        print(f"🔒 {state.error_message}")
        print("   Pass --wallet to authenticate.")
        return

    if state.status is PageStatus.NOT_FOUND:
        print(f"❓ {state.error_message}")
        print(f"   Return to the dashboard: {settings.dashboard_destination}")
        return

    snapshot = state.snapshot
    if snapshot is not None:
        order = snapshot.order
        hint = snapshot.hint
        print(f"\n{hint.title}")
        print("=" * 50)
        print(hint.message)
        print(f"Order:    {order.id}")
        print(f"Status:   {order.status.value}")
        print(f"Sent:     {format_amount(order.source_amount, order.source_currency)}")
        print(f"Receive:  {format_amount(order.target_amount, order.target_currency)}")
        if snapshot.provider_status and snapshot.provider_status.raw_status:
            print(f"Payment:  {snapshot.provider_status.raw_status}")
        if order.transaction_hash:
            print(f"Tx:       {explorer_url(order.transaction_hash)}")
        if hint.next_action.value == "contact_support":
            print(f"Support:  Telegram {settings.telegram_url} | WhatsApp {settings.whatsapp_url}")

    if state.has_error:
        actions = ", ".join(a.value for a in state.recovery_actions)
        print(f"⚠️  {state.error_message} (actions: {actions})")


async def cli_watch(order_id: Optional[str], payment_reference: Optional[str], wallet: Optional[str], skip_share: bool):
    """Poll a payment until it settles and the redirect fires"""
    context = RampContext.create(settings)
    done = asyncio.Event()
    last_printed = {"key": None}

    def navigate(destination: str) -> None:
        print(f"➡️  Redirecting to {destination}")
        done.set()

    def on_change(state: PageState) -> None:
        snapshot = state.snapshot
        key = (state.status, snapshot.status if snapshot else None, state.error_message)
        if key != last_printed["key"]:
            last_printed["key"] = key
            print_state(state)
        if state.status in (PageStatus.NOT_FOUND, PageStatus.AUTH_REQUIRED) or state.error_kind == "timeout":
            done.set()
        elif snapshot is not None and snapshot.is_terminal and snapshot.status.value != "completed":
            done.set()

    controller = PaymentPageController(context, navigate, on_change=on_change)
    share_tasks: Set[asyncio.Task] = set()

    def on_share_done(task: asyncio.Task) -> None:
        share_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            print(f"❌ Sharing failed: {task.exception()}")

    def on_share_prompt(is_open: bool) -> None:
        if not is_open:
            return
        if skip_share:
            controller.skip_sharing()
            return
        task = asyncio.ensure_future(controller.share([ManualCopy(lambda text: print(f"\n📋 Receipt\n{text}\n"))]))
        share_tasks.add(task)
        task.add_done_callback(on_share_done)

    controller.share_gate.on_change(on_share_prompt)
    controller.redirect.on_tick(lambda remaining: print(f"   redirecting in {remaining}s", end="\r"))

    try:
        state = await controller.open(order_id=order_id, payment_reference=payment_reference, wallet_address=wallet)
        print_state(state)
        if state.status in (PageStatus.NOT_FOUND, PageStatus.AUTH_REQUIRED):
            return
        await done.wait()
    finally:
        for task in list(share_tasks):
            task.cancel()
        await controller.close()


async def cli_onramp(amount: str, target_currency: str, recipient: str, wallet: Optional[str]):
    """Create an on-ramp order and print the checkout link"""
    try:
        value = Decimal(amount)
    except InvalidOperation:
        print(f"❌ Invalid amount: {amount}")
        return
    if not value.is_finite() or value <= 0:
        print(f"❌ Invalid amount: {amount}")
        return

    context = RampContext.create(settings)
    try:
        result = await start_onramp(context, value, target_currency, recipient, wallet_address=wallet)
    except (RampError, ValueError) as e:
        print(f"❌ Error: {e}")
        return

    print(f"✅ Order {result.order.id} created ({result.order.status.value})")
    if result.checkout.checkout_url:
        print(f"Pay here: {result.checkout.checkout_url}")
    if result.checkout.payment_reference:
        print(f"Watch with: python cli.py watch --payment-reference {result.checkout.payment_reference}")


def cli_logout():
    context = RampContext.create(settings)
    context.credentials.clear()
    print("👋 Stored credential cleared")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Ramp payment watcher")
    parser.add_argument("--log-level", default=None, help="Override RAMPWATCH_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command")

    watch_parser = subparsers.add_parser("watch", help="Track a payment until it settles")
    watch_parser.add_argument("--order-id", help="Order id (fallback identifier)")
    watch_parser.add_argument("--payment-reference", help="Payment reference (preferred identifier)")
    watch_parser.add_argument("--wallet", help="Wallet address used to obtain a token if none is stored")
    watch_parser.add_argument("--skip-share", action="store_true", help="Skip the receipt prompt and redirect at once")

    onramp_parser = subparsers.add_parser("onramp", help="Create an on-ramp order")
    onramp_parser.add_argument("amount", help="Fiat amount")
    onramp_parser.add_argument("recipient", help="Wallet that receives the asset")
    onramp_parser.add_argument("target_currency", nargs="?", default=settings.default_target_currency)
    onramp_parser.add_argument("--wallet", help="Wallet address used to authenticate (default: recipient)")

    subparsers.add_parser("logout", help="Forget the stored credential")

    return parser


async def main():
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.log_level)

    if not args.command:
        parser.print_help()
        return

    command = args.command.lower()

    if command == "watch":
        if not args.order_id and not args.payment_reference:
            parser.error("watch needs --order-id or --payment-reference")
        await cli_watch(args.order_id, args.payment_reference, args.wallet, args.skip_share)

    elif command == "onramp":
        await cli_onramp(args.amount, args.target_currency, args.recipient, args.wallet)

    elif command == "logout":
        cli_logout()

    else:
        print(f"❌ Unknown command: {command}")
        parser.print_help()


if __name__ == "__main__":
    asyncio.run(main())
