# ------------------------------------------------------------------
# Abstract "I/O" methods, implemented by the live / backtest subclasses
# ------------------------------------------------------------------
from abc import ABC, abstractmethod
from typing import Optional

from hedge_grid.dataclass.position import GridPosition, Side

ROLE_MAIN = "MAIN"
ROLE_HEDGE = "HEDGE"


class IHedgeIO(ABC):
    """
    Abstract I/O methods for the hedge strategy.
    Subclasses must implement these methods for live or backtest functionality.
    """

    @abstractmethod
    async def _io_open_position(self, timestamp_ms: int, role: str, side: Side, qty: float, price: float) -> Optional[float]:
        """
        Open a market position for role MAIN or HEDGE.
        - live: ExchangeSync market order with positionSide
        - backtest: immediate mock fill
        return: average fill price, None on failure
        """
        raise NotImplementedError

    @abstractmethod
    async def _io_close_position(self, timestamp_ms: int, role: str, side: Side, qty: float, price: float) -> Optional[float]:
        """
        Close the whole position of the given side.
        return: average fill price, None on failure
        """
        raise NotImplementedError

    @abstractmethod
    async def _io_cancel_all_orders(self) -> None:
        raise NotImplementedError

    @abstractmethod
    async def _run(self, *args, **kwargs) -> None:
        """
        main loop: live price monitor or backtest replay
        """
        raise NotImplementedError

    @abstractmethod
    def _after_position_open(self, timestamp_ms: int, role: str, position: GridPosition) -> None:
        """
        Called after a position was filled and recorded.
        - BacktestHedgeStrategy: trade log
        - LiveHedgeStrategy: no-op (exchange is the source of truth)
        """
        raise NotImplementedError

    @abstractmethod
    def _after_position_close(self, timestamp_ms: int, role: str, position: GridPosition, close_price: float, reason: str) -> None:
        """
        Called after a close was filled and the position cleared.
        - BacktestHedgeStrategy: realized PnL accounting
        """
        raise NotImplementedError
