# backtest_strategy.py
from __future__ import annotations

import os
from typing import Any, Dict, List, Optional

import pandas as pd

from hedge_grid.database.logger import Logger
from hedge_grid.dataclass.position import GridPosition, Side
from hedge_grid.datas.strategy import StrategyConfig
import hedge_grid.utils.util as util

from .base_strategy import BaseHedgeStrategy


def load_price_csv(file_path: str) -> pd.DataFrame:
    """
    Read an OHLCV (or Time/Close only) CSV into a frame indexed by time with a `close` column.
    """
    df = pd.read_csv(file_path, parse_dates=["Time"])
    df = df.rename(columns={"Time": "time", "Open": "open", "High": "high", "Low": "low", "Close": "close", "Volume": "volume"})
    if "close" not in df.columns:
        raise ValueError(f"{file_path}: a Close column is required")
    df = df.sort_values("time").set_index("time")
    return df


class BacktestHedgeStrategy(BaseHedgeStrategy):
    """
    Strategy for backtest / forward_test
    - no orders sent to an exchange
    - every order fills immediately at the tick price
    - realized PnL and a trade log kept in memory
    """

    def __init__(self, config: StrategyConfig, fee_rate: float = 0.0004, notifier=None, logger: Optional[Logger] = None, fail_orders: bool = False) -> None:
        super().__init__(config=config, mode="backtest", notifier=notifier, logger=logger)
        self.fee_rate = float(fee_rate)
        self.fail_orders = fail_orders
        self.realized_pnl: float = 0.0
        self.fees_paid: float = 0.0
        self.trades: List[Dict[str, Any]] = []
        self.logger.log("[BacktestHedgeStrategy] initialized", level="INFO")

    # main backtest loop
    async def _run(self, file_path: Optional[str] = None) -> Dict[str, Any]:
        """
        Replay a CSV of prices through on_tick.
        If file_path is None, fall back to env PRICE_FILE.
        """
        file_path = file_path or os.getenv("PRICE_FILE")
        if not file_path or not os.path.exists(file_path):
            raise ValueError("PRICE_FILE must be set in env or config for backtest and point to an existing file")

        self.logger.log(f"Loading price data from {file_path}", level="INFO")
        df = load_price_csv(file_path)
        await self.run_frame(df)
        return self.get_summary()

    async def run_frame(self, df: pd.DataFrame) -> None:
        started = False
        for idx, row in df.iterrows():
            ts = int(pd.Timestamp(idx).value // 10**6)  # Timestamp -> ms
            price = float(row["close"])
            if not started:
                self.start(price, ts)
                started = True
                continue
            await self.on_tick(price, ts)

    # ------------------------------------------------------------------
    # implement abstract I/O
    # ------------------------------------------------------------------
    async def _io_open_position(self, timestamp_ms: int, role: str, side: Side, qty: float, price: float) -> Optional[float]:
        if self.fail_orders:
            return None
        order_side = "BUY" if side is Side.LONG else "SELL"
        resp = util.mock_futures_order(self.symbol, order_side, side.value, price, qty, timestamp_ms, action=f"{role}_OPEN")
        self.logger.log(
            f"Date: {util.timemstamp_ms_to_date(timestamp_ms)} - [{role}_IO] open {side.value} backtest qty={qty:.4f} @ {price:.4f}, id={resp['id']}",
            level="DEBUG",
        )
        return util.fill_price_from_order(resp, price)

    async def _io_close_position(self, timestamp_ms: int, role: str, side: Side, qty: float, price: float) -> Optional[float]:
        if self.fail_orders:
            return None
        order_side = "SELL" if side is Side.LONG else "BUY"
        resp = util.mock_futures_order(self.symbol, order_side, side.value, price, qty, timestamp_ms, action=f"{role}_CLOSE")
        self.logger.log(
            f"Date: {util.timemstamp_ms_to_date(timestamp_ms)} - [{role}_IO] close {side.value} backtest qty={qty:.4f} @ {price:.4f}, id={resp['id']}",
            level="DEBUG",
        )
        return util.fill_price_from_order(resp, price)

    async def _io_cancel_all_orders(self) -> None:
        return None

    def _after_position_open(self, timestamp_ms: int, role: str, position: GridPosition) -> None:
        fee = position.entry * self.config.order_size * self.fee_rate
        self.fees_paid += fee
        self.realized_pnl -= fee
        self.trades.append(
            {
                "timestamp": timestamp_ms,
                "role": role,
                "action": "OPEN",
                "side": position.side.value,
                "price": position.entry,
                "qty": self.config.order_size,
                "fee": fee,
                "pnl": 0.0,
                "reason": "",
            }
        )

    def _after_position_close(self, timestamp_ms: int, role: str, position: GridPosition, close_price: float, reason: str) -> None:
        """
        Accounting for backtest/forward_test:
        - gross pnl from entry to close, minus the closing fee
        """
        qty = self.config.order_size
        gross = (close_price - position.entry) * position.side.direction * qty
        fee = close_price * qty * self.fee_rate
        pnl = gross - fee
        self.fees_paid += fee
        self.realized_pnl += pnl
        self.trades.append(
            {
                "timestamp": timestamp_ms,
                "role": role,
                "action": "CLOSE",
                "side": position.side.value,
                "price": close_price,
                "qty": qty,
                "fee": fee,
                "pnl": pnl,
                "reason": reason,
            }
        )
        self.logger.log(
            f"Date: {util.timemstamp_ms_to_date(timestamp_ms)} - [PAPER] {role} CLOSE: side={position.side.value}, entry={position.entry}, "
            f"close={close_price}, level={position.level}, pnl={pnl:.4f}, total_realized={self.realized_pnl:.4f}",
            level="INFO",
        )

    # ------------------------------------------------------------------
    def get_summary(self) -> Dict[str, Any]:
        closes = [t for t in self.trades if t["action"] == "CLOSE"]
        wins = [t for t in closes if t["pnl"] > 0]
        return {
            "symbol": self.symbol,
            "trades": len(closes),
            "main_closes": sum(1 for t in closes if t["role"] == "MAIN"),
            "hedge_closes": sum(1 for t in closes if t["role"] == "HEDGE"),
            "kills": sum(1 for t in closes if t["reason"] == "KILL"),
            "win_rate": (len(wins) / len(closes)) if closes else 0.0,
            "fees": round(self.fees_paid, 6),
            "realized_pnl": round(self.realized_pnl, 6),
            "open_main": self.main.side.value if self.main else None,
            "open_hedge": self.hedge.side.value if self.hedge else None,
        }
