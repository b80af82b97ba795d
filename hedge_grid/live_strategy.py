# live_strategy.py
from __future__ import annotations

import asyncio
from typing import Optional

import ccxt

from hedge_grid.database.logger import Logger
from hedge_grid.dataclass.position import GridPosition, Side
from hedge_grid.datas.strategy import StrategyConfig
from hedge_grid.exchange import ExchangeSync
import hedge_grid.utils.util as util

from .base_strategy import BaseHedgeStrategy


class LiveHedgeStrategy(BaseHedgeStrategy):
    """
    Strategy for live trading
    - market orders through ExchangeSync (ccxt), blocking calls run in a worker thread
    - prices from a PollingPriceFeed / StreamPriceFeed
    - state persisted in MySQL (BoundaryState / PositionState)
    """

    def __init__(
        self,
        config: StrategyConfig,
        exchange: ExchangeSync,
        price_feed,
        notifier=None,
        boundary_db=None,
        position_db=None,
        logger: Optional[Logger] = None,
    ) -> None:
        super().__init__(config=config, mode="live", notifier=notifier, boundary_db=boundary_db, position_db=position_db, logger=logger)
        self.exchange = exchange
        self.price_feed = price_feed
        self.logger.log("[LiveHedgeStrategy] initialized", level="INFO")

    async def prepare_exchange(self) -> None:
        """
        Hedge position mode + leverage, once before trading.
        """
        await asyncio.to_thread(self.exchange.enable_hedge_mode)
        await asyncio.to_thread(self.exchange.set_leverage, self.config.leverage)

    # ------------------------------------------------------------------
    # monitor loop
    # ------------------------------------------------------------------
    async def _run(self) -> None:
        price = await self.price_feed.wait_for_first_price(self.config.poll_interval_seconds)
        self.start(price)

        while self.ctx.running and not self.ctx.stop_requested:
            try:
                price = await self.price_feed.get_current_price()
                if price is None:
                    await asyncio.sleep(self.config.poll_interval_seconds)
                    continue
                await self.on_tick(price, util.now_ms())
            except Exception as e:
                # a crashed tick must not kill the loop
                self.logger.log(f"[LOOP] tick error: {e!r}, backoff {self.config.error_backoff_seconds}s", level="ERROR")
                await asyncio.sleep(self.config.error_backoff_seconds)
                continue
            await asyncio.sleep(self.config.poll_interval_seconds)

        self.logger.log("[LOOP] monitor stopped", level="INFO")

    # ------------------------------------------------------------------
    # implement abstract I/O
    # ------------------------------------------------------------------
    async def _io_open_position(self, timestamp_ms: int, role: str, side: Side, qty: float, price: float) -> Optional[float]:
        self.logger.log(f"[{role}_IO] open {side.value} live qty={qty:.4f} @ ~{price:.4f}", level="DEBUG")
        try:
            resp = await asyncio.to_thread(self.exchange.open_position, side.value, qty)
        except ccxt.BaseError as e:
            self.logger.log(f"[Live] open {role} error: {e}", level="ERROR")
            return None
        return util.fill_price_from_order(resp, price)

    async def _io_close_position(self, timestamp_ms: int, role: str, side: Side, qty: float, price: float) -> Optional[float]:
        self.logger.log(f"[{role}_IO] close {side.value} live qty={qty:.4f} @ ~{price:.4f}", level="DEBUG")
        try:
            resp = await asyncio.to_thread(self.exchange.close_position, side.value, qty)
        except ccxt.BaseError as e:
            self.logger.log(f"[Live] close {role} error: {e}", level="ERROR")
            return None
        return util.fill_price_from_order(resp, price)

    async def _io_cancel_all_orders(self) -> None:
        await asyncio.to_thread(self.exchange.cancel_all_orders)

    def _after_position_open(self, timestamp_ms: int, role: str, position: GridPosition) -> None:
        # exchange is the source of truth for balances
        return None

    def _after_position_close(self, timestamp_ms: int, role: str, position: GridPosition, close_price: float, reason: str) -> None:
        return None
