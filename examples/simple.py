"""TradePit example: five peers trading, with two global snapshots.

Run: TRADEPIT_PLAYERS=5 TRADEPIT_SEED=7 python examples/simple.py
"""

import asyncio
import logging
import os

from tradepit import (
    Coordinator,
    ResetAction,
    SimulationConfig,
    configure_logging,
)

NUM_PLAYERS = int(os.environ.get("TRADEPIT_PLAYERS", "5"))
SEED = os.environ.get("TRADEPIT_SEED")


async def main():
    configure_logging(level=logging.INFO)

    config = SimulationConfig(
        num_players=NUM_PLAYERS,
        seed=int(SEED) if SEED else None,
    )

    async with Coordinator(config) as coordinator:
        coordinator.deal()

        for initiator in (0, config.num_players - 1):
            print("\n" + "=" * 50)
            print(f"SNAPSHOT FROM PEER {initiator}")
            print("=" * 50)

            reports = await coordinator.snapshot(initiator=initiator)
            for report in reports:
                print(report.to_state())

            totals = Coordinator.aggregate(reports)
            print(f"Totals: {totals}")
            print(f"Recorded {sum(totals.values())} of {coordinator.total_dealt} tokens dealt")

        await coordinator.reset(ResetAction.HALT)
        await coordinator.reset(ResetAction.CLEAR)


if __name__ == "__main__":
    asyncio.run(main())
