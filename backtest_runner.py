import asyncio
import os
import sys

from hedge_grid.backtest_strategy import BacktestHedgeStrategy
from hedge_grid.config import CONFIG
from hedge_grid.datas.strategy import StrategyConfig


async def backtest_from_file(file_path: str, fee_rate: float) -> dict:
    bot = BacktestHedgeStrategy(config=StrategyConfig.from_config(CONFIG), fee_rate=fee_rate)
    return await bot._run(file_path)


def main():
    file_path = os.getenv("PRICE_FILE") or (sys.argv[1] if len(sys.argv) > 1 else None)
    if not file_path:
        print("Environment variable PRICE_FILE (or a CSV path argument) is required.", file=sys.stderr)
        sys.exit(1)

    fee_rate = float(os.getenv("FEE_RATE", "0.0004"))
    summary = asyncio.run(backtest_from_file(file_path, fee_rate))

    print("\n===== Backtest Summary =====")
    for k, v in summary.items():
        print(f"{k}: {v}")


if __name__ == "__main__":
    main()
