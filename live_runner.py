import asyncio
import os

from hedge_grid.config import CONFIG
from hedge_grid.database.boundary_state import BoundaryState
from hedge_grid.database.logger import Logger
from hedge_grid.database.position_state import PositionState
from hedge_grid.datas.exchange import ExchangeConfig
from hedge_grid.datas.strategy import StrategyConfig
from hedge_grid.exchange import ExchangeSync
from hedge_grid.live_strategy import LiveHedgeStrategy
from hedge_grid.notifier import TelegramNotifier
from hedge_grid.price_feed import PollingPriceFeed, StreamPriceFeed


def build_strategy() -> LiveHedgeStrategy:
    logger = Logger()
    exchange_config = ExchangeConfig.from_config(CONFIG)
    strategy_config = StrategyConfig.from_config(CONFIG)

    exchange = ExchangeSync(symbol=strategy_config.symbol, config=exchange_config)
    if CONFIG.get("use_exchange_tick_size", True):
        strategy_config.tick_size = exchange.get_tick_size()

    if str(CONFIG.get("price_feed", "polling")).lower() == "stream":
        feed = StreamPriceFeed(exchange_config.ws_url, strategy_config.symbol, logger=logger)
    else:
        feed = PollingPriceFeed(exchange, logger=logger)

    notifier = TelegramNotifier(
        bot_token=str(CONFIG.get("telegram_bot_token") or ""),
        chat_id=str(CONFIG.get("telegram_chat_id") or ""),
        logger=logger,
    )

    return LiveHedgeStrategy(
        config=strategy_config,
        exchange=exchange,
        price_feed=feed,
        notifier=notifier,
        boundary_db=BoundaryState(),
        position_db=PositionState(),
        logger=logger,
    )


async def main():
    bot = build_strategy()
    await bot.prepare_exchange()
    bot.logger.log(f"Bot initialized ({os.getenv('ENVIRONMENT', 'development')}). Starting price monitor...", level="INFO")
    try:
        await bot._run()
    finally:
        if isinstance(bot.price_feed, StreamPriceFeed):
            await bot.price_feed.stop()


if __name__ == "__main__":
    asyncio.run(main())
