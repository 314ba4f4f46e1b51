"""
Offline console demo: runs the full ordering dialogue without Telegram.

Uses the real conversation engine, state machine and JSON-backed
collaborators. Orders are written to a throwaway file in the system temp
directory unless FULFILLMENT_PATH is set.

Usage:
    python console_demo.py
    python console_demo.py --scenario order
    python console_demo.py --scenario browse
    python console_demo.py --scenario cancel
"""

import argparse
import asyncio
import os
import tempfile
from pathlib import Path

from commerce_bot.config import settings
from commerce_bot.conversation.collaborators import local_collaborators
from commerce_bot.conversation.engine import ConversationEngine
from commerce_bot.schemas.message_schema import OutboundMessage

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

CONSOLE_CHAT_ID = "console"


class ConsoleSession:
    """Simulates one customer chatting with the store in the terminal."""

    # Pre-scripted scenarios for --scenario flag
    SCENARIOS: dict[str, list[str]] = {
        "order": [
            "I want sports shoes for a boy",
            "2",
            "size 9",
            "12 MG Road, Bengaluru, pincode 560001",
            "yes",
        ],
        "browse": [
            "hi",
            "something for the office",
            "for women",
            "more",
            "Grace Pump",
            "restart",
        ],
        "cancel": [
            "slippers for me",
            "1",
            "8",
            "Flat 4B, Lake View Apartments 400050",
            "no, cancel it",
        ],
    }

    def __init__(self) -> None:
        fulfillment_path = os.getenv("FULFILLMENT_PATH") or str(
            Path(tempfile.gettempdir()) / "commerce_bot_console_orders.json"
        )
        self.engine = ConversationEngine(
            local_collaborators(fulfillment_path=fulfillment_path),
            self._print_message,
        )

    async def _print_message(self, message: OutboundMessage) -> None:
        if message.is_product_card:
            print(f"{YELLOW}[card] {message.image_url}{RESET}")
            for line in message.text.splitlines():
                print(f"{YELLOW}       {line}{RESET}")
        else:
            print(f"{GREEN}{BOLD}[{settings.store.name}]{RESET} {GREEN}{message.text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def _banner(self, title: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  {title}{RESET}")
        print(f"{BOLD}  Store: {settings.store.name}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        print()

    async def _say(self, text: str) -> None:
        await self.engine.handle_message(CONSOLE_CHAT_ID, text)
        self.system_log(f"Stage: {self.engine.get_stage(CONSOLE_CHAT_ID).value}")

    async def play(self, steps: list[str]) -> None:
        for step in steps:
            print(f"\n{BLUE}[Customer] {RESET}{step}")
            await self._say(step)

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario."""
        steps = self.SCENARIOS.get(scenario)
        if not steps:
            print(f"Unknown scenario: {scenario}. Available: {', '.join(self.SCENARIOS)}")
            return
        self._banner(f"COMMERCE BOT - Scenario: {scenario}")
        asyncio.run(self.play(steps))
        print(f"\n{BOLD}  Scenario '{scenario}' complete.{RESET}")

    def run(self) -> None:
        self._banner("COMMERCE BOT - Console Demo (type 'quit' to exit)")
        asyncio.run(self._interactive())

    async def _interactive(self) -> None:
        while True:
            user_input = (await asyncio.to_thread(input, f"\n{BLUE}[Customer] {RESET}")).strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                return
            await self._say(user_input)


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline commerce bot demo")
    parser.add_argument("--scenario", choices=sorted(ConsoleSession.SCENARIOS), default=None)
    args = parser.parse_args()

    session = ConsoleSession()
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
