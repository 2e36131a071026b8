"""Protean Engine runner for the storefront domain.

Starts the Engine workers that deliver events to the effect handlers
(inventory, discounts, commissions, notifications, provider sync) when
event processing is asynchronous.

Usage:
    python src/server.py
    python src/server.py --test-mode   # drain pending messages and exit
"""

import argparse
import asyncio

from protean.server.engine import Engine

from storefront.domain import storefront


async def run(test_mode: bool = False):
    storefront.init()
    engine = Engine(storefront, test_mode=test_mode)
    await engine.run()


def main():
    parser = argparse.ArgumentParser(description="Storefront Engine runner")
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Process pending messages once and exit",
    )
    args = parser.parse_args()

    asyncio.run(run(args.test_mode))


if __name__ == "__main__":
    main()
