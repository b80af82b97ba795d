import unittest

import ccxt

from hedge_grid.dataclass.position import Side
from hedge_grid.live_strategy import LiveHedgeStrategy
from tests.fakes import FakeLogger, FakeNotifier, make_config


class FakeExchange:
    def __init__(self, average=None, error=None):
        self.average = average
        self.error = error
        self.calls = []

    def _order(self, name, side, qty):
        self.calls.append((name, side, qty))
        if self.error is not None:
            raise self.error
        return {"id": "1", "average": self.average, "price": None, "info": {}}

    def open_position(self, side, qty):
        return self._order("open", side, qty)

    def close_position(self, side, qty):
        return self._order("close", side, qty)

    def cancel_all_orders(self):
        self.calls.append(("cancel_all",))
        return []

    def enable_hedge_mode(self):
        self.calls.append(("hedge_mode",))

    def set_leverage(self, leverage):
        self.calls.append(("leverage", leverage))


class ScriptedFeed:
    """Returns prices in order, stops the bot once exhausted."""

    def __init__(self, first, prices):
        self.first = first
        self.prices = list(prices)
        self.bot = None

    async def wait_for_first_price(self, poll_interval=1.0):
        return self.first

    async def get_current_price(self):
        if not self.prices:
            self.bot.stop()
            return None
        return self.prices.pop(0)


class TestLiveHedgeStrategy(unittest.IsolatedAsyncioTestCase):
    def make(self, exchange, feed=None, **overrides):
        self.logger = FakeLogger()
        self.notifier = FakeNotifier()
        return LiveHedgeStrategy(
            config=make_config(**overrides),
            exchange=exchange,
            price_feed=feed,
            notifier=self.notifier,
            logger=self.logger,
        )

    async def test_open_uses_average_fill(self):
        exchange = FakeExchange(average=110.25)
        bot = self.make(exchange)
        fill = await bot._io_open_position(0, "MAIN", Side.LONG, 1.0, 110.0)
        self.assertEqual(fill, 110.25)
        self.assertEqual(exchange.calls, [("open", "LONG", 1.0)])

    async def test_missing_average_falls_back_to_tick_price(self):
        bot = self.make(FakeExchange(average=None))
        self.assertEqual(await bot._io_close_position(0, "HEDGE", Side.SHORT, 1.0, 99.0), 99.0)

    async def test_ccxt_error_returns_none(self):
        bot = self.make(FakeExchange(error=ccxt.NetworkError("connection reset")))
        self.assertIsNone(await bot._io_open_position(0, "HEDGE", Side.SHORT, 1.0, 100.0))
        self.assertTrue(self.logger.has("ERROR", "connection reset"))

    async def test_prepare_exchange(self):
        exchange = FakeExchange()
        bot = self.make(exchange, leverage=3)
        await bot.prepare_exchange()
        self.assertEqual(exchange.calls, [("hedge_mode",), ("leverage", 3)])

    async def test_reset_cancels_orders(self):
        exchange = FakeExchange()
        bot = self.make(exchange)
        await bot.reset()
        self.assertIn(("cancel_all",), exchange.calls)

    async def test_loop_survives_bad_tick_and_stops(self):
        exchange = FakeExchange(average=110.0)
        feed = ScriptedFeed(100.0, [110.0, float("nan"), None, 111.0])
        bot = self.make(exchange, feed, poll_interval_seconds=0.0, error_backoff_seconds=0.0)
        feed.bot = bot

        await bot._run()

        self.assertIs(bot.main.side, Side.LONG)
        self.assertTrue(self.logger.has("ERROR", "[LOOP] tick error"))
        self.assertTrue(self.logger.has("INFO", "monitor stopped"))
        self.assertFalse(bot.ctx.running)
        self.assertTrue(self.notifier.contains("Bot started"))
        self.assertTrue(self.notifier.contains("Bot stopped"))


if __name__ == "__main__":
    unittest.main()
