"""Protean Engine runner for the allocation domain.

With PROTEAN_ENV=production, events are processed asynchronously: the Engine
runs the side-effect handlers (notifications, carrier and order-source calls,
stock compensation) and the split order board projector outside the request
that committed the transition.

Usage:
    PROTEAN_ENV=production python src/server.py
"""

import asyncio

from protean.server.engine import Engine


async def run():
    from allocation.domain import allocation

    allocation.init()
    await Engine(allocation).run()


def main():
    asyncio.run(run())


if __name__ == "__main__":
    main()
