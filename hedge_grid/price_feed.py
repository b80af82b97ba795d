from __future__ import annotations

import asyncio
import json
from typing import Optional

import websockets

from hedge_grid.database.logger import Logger
from hedge_grid.exchange import ExchangeSync


class PollingPriceFeed:
    """
    Price on demand through the ccxt ticker (best bid, last as fallback).
    None means the tick should be skipped.
    """

    def __init__(self, exchange: ExchangeSync, logger: Optional[Logger] = None, timeout: float = 10.0) -> None:
        self.exchange = exchange
        self.logger = logger or Logger()
        self.timeout = timeout

    async def get_current_price(self) -> Optional[float]:
        try:
            ticker = await asyncio.wait_for(asyncio.to_thread(self.exchange.fetch_ticker), timeout=self.timeout)
        except asyncio.TimeoutError:
            self.logger.log("[FEED] fetch_ticker timeout", level="ERROR")
            return None
        except Exception as e:
            self.logger.log(f"[FEED] fetch_ticker error: {e}", level="ERROR")
            return None

        price = ticker.get("bid") or ticker.get("last")
        return float(price) if price else None

    async def wait_for_first_price(self, poll_interval: float = 1.0) -> float:
        while True:
            price = await self.get_current_price()
            if price:
                return price
            await asyncio.sleep(poll_interval)


class StreamPriceFeed:
    """
    Binance bookTicker stream. A background task keeps the latest best bid,
    reconnecting with exponential backoff when the socket drops.
    """

    def __init__(self, ws_url: str, symbol: str, logger: Optional[Logger] = None, max_reconnect_delay: float = 30.0) -> None:
        self.url = f"{ws_url.rstrip('/')}/{symbol.replace('/', '').split(':')[0].lower()}@bookTicker"
        self.logger = logger or Logger()
        self.max_reconnect_delay = max_reconnect_delay
        self.latest_price: Optional[float] = None
        self._task: Optional[asyncio.Task] = None
        self._first_price = asyncio.Event()

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._listen())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def handle_message(self, raw: str) -> Optional[float]:
        msg = json.loads(raw)
        bid = msg.get("b")
        if bid is None:
            return None
        self.latest_price = float(bid)
        self._first_price.set()
        return self.latest_price

    async def _listen(self) -> None:
        delay = 1.0
        while True:
            try:
                async with websockets.connect(self.url) as ws:
                    self.logger.log(f"[FEED] connected {self.url}", level="INFO")
                    delay = 1.0
                    async for raw in ws:
                        try:
                            self.handle_message(raw)
                        except (ValueError, TypeError) as e:
                            self.logger.log(f"[FEED] bad message: {e}", level="ERROR")
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.log(f"[FEED] connection error: {e}, reconnect in {delay:.0f}s", level="ERROR")
            await asyncio.sleep(delay)
            delay = min(delay * 2, self.max_reconnect_delay)

    async def get_current_price(self) -> Optional[float]:
        return self.latest_price

    async def wait_for_first_price(self, poll_interval: float = 1.0) -> float:
        self.start()
        await self._first_price.wait()
        return self.latest_price
