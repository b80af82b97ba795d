from copy import deepcopy
from typing import Any, Dict, Optional, Tuple

from hedge_grid.dataclass.boundary import Boundary
from hedge_grid.dataclass.position import HedgePosition, MainPosition


class MemoryBoundaryState:
    """Same API as BoundaryState, kept in a dict (backtest / forward_test)."""

    def __init__(self):
        self.rows: Dict[str, Dict[str, Any]] = {}

    def load_boundary(self, symbol: str) -> Optional[Dict[str, Any]]:
        row = self.rows.get(symbol)
        return dict(row) if row else None

    def save_boundary(self, symbol: str, boundary: Boundary, runtime: Dict[str, Any]) -> None:
        self.rows[symbol] = {"symbol": symbol, **boundary.to_dict(), **runtime}

    def clear_boundary(self, symbol: str) -> int:
        return 1 if self.rows.pop(symbol, None) is not None else 0


class MemoryPositionState:
    def __init__(self):
        self.rows: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def load_positions(self, symbol: str) -> Tuple[Optional[MainPosition], Optional[HedgePosition]]:
        main = self.rows.get((symbol, "MAIN"))
        hedge = self.rows.get((symbol, "HEDGE"))
        return (
            MainPosition.from_dict(deepcopy(main)) if main else None,
            HedgePosition.from_dict(deepcopy(hedge)) if hedge else None,
        )

    def save_positions(self, symbol: str, main: Optional[MainPosition], hedge: Optional[HedgePosition]) -> None:
        for role, pos in (("MAIN", main), ("HEDGE", hedge)):
            if pos is None:
                self.rows.pop((symbol, role), None)
            else:
                self.rows[(symbol, role)] = pos.to_dict()

    def clear_positions(self, symbol: str) -> int:
        keys = [k for k in self.rows if k[0] == symbol]
        for k in keys:
            del self.rows[k]
        return len(keys)
