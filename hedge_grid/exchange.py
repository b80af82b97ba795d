from typing import Any, Dict, List, Optional

import ccxt

from hedge_grid.datas.exchange import ExchangeConfig
import hedge_grid.utils.util as util


class ExchangeSync:
    """
    Binance USD-M futures in hedge position mode (LONG and SHORT legs side by side).
    Every call is blocking; the async strategy runs them through asyncio.to_thread.
    """

    def __init__(self, symbol: str, config: Optional[ExchangeConfig] = None, load_markets: bool = True, futures_client: Any = None):
        self.symbol = symbol
        self.config = config
        self.futures = futures_client or self.create_future_exchanges(config)
        if load_markets:
            self.ensure_markets_loaded()

    def ensure_markets_loaded(self):
        if not self.futures.markets:
            self.futures.load_markets()

    def create_future_exchanges(self, config: Optional[ExchangeConfig]):
        if config is None:
            raise ValueError("ExchangeConfig is required to create a futures client")

        futures = ccxt.binanceusdm(
            {
                "apiKey": config.futures_api_key,
                "secret": config.futures_api_secret,
                "enableRateLimit": config.enable_rate_limit,
                "options": {"adjustForTimeDifference": config.adjust_for_time_diff},
            }
        )

        if config.use_futures_testnet:
            futures.set_sandbox_mode(True)

        return futures

    # ---------------- Setup ----------------
    def enable_hedge_mode(self) -> None:
        try:
            self.futures.set_position_mode(True, self.symbol)
        except ccxt.ExchangeError as e:
            # -4059: already in hedge mode
            if "-4059" not in str(e):
                raise

    def set_leverage(self, leverage: int) -> Any:
        return self.futures.set_leverage(leverage, self.symbol)

    # ---------------- Market data ----------------
    def fetch_ticker(self) -> Dict[str, Any]:
        return self.futures.fetch_ticker(self.symbol)

    def get_market_info(self) -> Dict[str, Any]:
        return self.futures.market(self.symbol)

    def get_tick_size(self) -> float:
        """
        Price step of the instrument, from the PRICE_FILTER when available.
        """
        market = self.get_market_info()
        for f in market.get("info", {}).get("filters", []) or []:
            if f.get("filterType") == "PRICE_FILTER" and f.get("tickSize"):
                return float(f["tickSize"])
        precision = market["precision"]["price"]
        # ccxt reports either a step (TICK_SIZE mode) or a number of decimals
        if isinstance(precision, float) and precision < 1:
            return precision
        return float(10 ** -int(precision))

    def get_amount_precision(self) -> int:
        precision = self.get_market_info()["precision"]["amount"]
        if isinstance(precision, float) and precision < 1:
            return max(0, len(f"{precision:.10f}".rstrip("0").split(".")[1]))
        return int(precision)

    # ---------------- Orders ----------------
    def open_position(self, side: str, qty: float) -> Dict[str, Any]:
        """
        Market order opening a leg. side = LONG / SHORT.
        """
        order_side = "buy" if side == "LONG" else "sell"
        amount = util.to_exchange_amount(qty, self.get_amount_precision())
        return self.futures.create_order(self.symbol, "market", order_side, amount, None, params={"positionSide": side})

    def close_position(self, side: str, qty: float) -> Dict[str, Any]:
        order_side = "sell" if side == "LONG" else "buy"
        amount = util.to_exchange_amount(qty, self.get_amount_precision())
        return self.futures.create_order(self.symbol, "market", order_side, amount, None, params={"positionSide": side})

    def cancel_all_orders(self) -> List[Dict[str, Any]]:
        return self.futures.cancel_all_orders(self.symbol)
