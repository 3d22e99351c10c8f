"""CLI entry point for the WhatsApp Auto-Replier.

A terminal chat loop that runs each line through the same reply generator
the webhook uses.  Handy for checking the knowledge base and the Gemini key
without exposing a webhook.  With ``--send-to`` every reply is also relayed
over WhatsApp, which exercises the Vonage credentials end to end.

Usage:
    python -m auto_replier.main
    python -m auto_replier.main --debug
    python -m auto_replier.main --send-to 447700900000
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from auto_replier.services.reply_generator import ReplyGenerator
from auto_replier.services.vonage_client import DeliverySendError, WhatsAppSender

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "quit", "q")


def _configure_logging(debug: bool = False) -> None:
    """WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    if not debug:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("auto_replier").setLevel(logging.DEBUG if debug else logging.INFO)


async def chat_loop(
    generator: ReplyGenerator,
    sender: WhatsAppSender | None = None,
    recipient: str | None = None,
) -> None:
    """Read lines from stdin until EOF or an exit command."""
    while True:
        try:
            user_input = (await asyncio.to_thread(input, "You: ")).strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            return

        if not user_input:
            continue
        if user_input.lower() in EXIT_COMMANDS:
            print("\nGoodbye!")
            return

        reply = await generator.generate_reply(user_input)
        print(f"\nAri: {reply}\n")

        if sender is not None and recipient:
            try:
                receipt = await sender.send_text(recipient, reply)
                print(f"     (sent over WhatsApp, uuid {receipt.message_uuid})\n")
            except DeliverySendError as exc:
                print(f"     (WhatsApp delivery failed: {exc})\n")


async def _run(send_to: str | None) -> None:
    generator = ReplyGenerator()
    await generator.start()

    sender = WhatsAppSender() if send_to else None
    try:
        await chat_loop(generator, sender, send_to)
    finally:
        if sender is not None:
            await sender.aclose()


def main() -> None:
    parser = argparse.ArgumentParser(description="WhatsApp Auto-Replier CLI")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages including HTTP requests",
    )
    parser.add_argument(
        "--send-to", metavar="NUMBER",
        help="Also relay each reply to this WhatsApp number",
    )
    args = parser.parse_args()
    _configure_logging(debug=args.debug)

    print("\n" + "=" * 60)
    print("  WhatsApp Auto-Replier - CLI Chat")
    print("=" * 60)
    print("  Type your message and press Enter. 'quit' to exit.")
    print("=" * 60 + "\n")

    asyncio.run(_run(args.send_to))


if __name__ == "__main__":
    main()
