from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Dict, Optional

import pandas as pd

from hedge_grid.backtest_strategy import BacktestHedgeStrategy, load_price_csv
from hedge_grid.database.logger import Logger
from hedge_grid.datas.strategy import StrategyConfig


async def _run_month(config: StrategyConfig, month_df: pd.DataFrame, fee_rate: float, logger: Optional[Logger]) -> float:
    strat = BacktestHedgeStrategy(config=config, fee_rate=fee_rate, logger=logger)
    await strat.run_frame(month_df)
    return float(strat.realized_pnl)


def calculate_monthly_income(csv_path: str, config: StrategyConfig, fee_rate: float = 0.0004, logger: Optional[Logger] = None) -> Dict[str, float]:
    """
    Run independent monthly backtests and return net realized PnL per YYYY-MM.

    Assumptions:
    - each month starts flat (state reset per month), positions still open
      at month end are not counted
    - fills at the close price, no slippage or funding
    """
    df = load_price_csv(str(Path(csv_path)))
    if df.empty:
        return {}

    monthly_results: Dict[str, float] = {}
    for period, month_df in df.groupby(df.index.to_period("M")):
        if len(month_df) < 2:
            continue
        monthly_results[str(period)] = asyncio.run(_run_month(config, month_df, fee_rate, logger))

    return monthly_results


def print_monthly_income(monthly_results: Dict[str, float]) -> None:
    if not monthly_results:
        print("No monthly results.")
        return
    months = sorted(monthly_results.keys())
    total = 0.0
    print("Month\tIncome_USDT")
    for m in months:
        pnl = monthly_results[m]
        total += pnl
        print(f"{m}\t{pnl:.4f}")
    avg = total / len(months)
    print(f"Average\t{avg:.4f}")


if __name__ == "__main__":
    import argparse

    from hedge_grid.config import CONFIG

    parser = argparse.ArgumentParser(description="Estimate monthly income from hedge grid backtests.")
    parser.add_argument("--csv", required=True, help="Path to price CSV (Time,Close or Time,Open,High,Low,Close,Volume)")
    parser.add_argument("--fee_rate", type=float, default=0.0004)
    args = parser.parse_args()

    monthly = calculate_monthly_income(csv_path=args.csv, config=StrategyConfig.from_config(CONFIG), fee_rate=args.fee_rate)
    print_monthly_income(monthly)
