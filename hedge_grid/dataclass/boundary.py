from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from hedge_grid.dataclass.position import Side
import hedge_grid.utils.util as util


@dataclass
class Boundary:
    """
    Entry / re-entry trigger prices.

    - Flat: top and bottom both set, crossing either opens a main.
    - Main open: only the side that opens the opposite hedge is set
      (bottom for a LONG main, top for a SHORT main).
    - extreme: tightest hedge trigger applied since the last close, never loosened.
    """

    top: float | None = None
    bottom: float | None = None
    extreme: float | None = None
    last_update: int | None = None  # timestamp ms

    @property
    def is_empty(self) -> bool:
        return self.top is None and self.bottom is None

    def bracket(self, price: float, spacing: float, tick_size: float) -> None:
        self.top = util.to_price(price + spacing, tick_size)
        self.bottom = util.to_price(price - spacing, tick_size)
        self.extreme = None

    def one_sided(self, main_side: Side, price: float, spacing: float, tick_size: float) -> float:
        value = util.to_price(price - main_side.direction * spacing, tick_size)
        self.set_hedge_trigger(main_side, value)
        return value

    def set_hedge_trigger(self, main_side: Side, value: float) -> None:
        if main_side is Side.LONG:
            self.bottom, self.top = value, None
        else:
            self.top, self.bottom = value, None
        self.extreme = value

    def hedge_trigger(self, main_side: Side) -> Optional[float]:
        return self.bottom if main_side is Side.LONG else self.top

    def clear(self) -> None:
        self.top = None
        self.bottom = None
        self.extreme = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Boundary":
        if not data:
            return cls()

        def _f(key):
            value = data.get(key)
            return float(value) if value is not None else None

        last = data.get("last_update")
        return cls(top=_f("top"), bottom=_f("bottom"), extreme=_f("extreme"), last_update=int(last) if last is not None else None)
